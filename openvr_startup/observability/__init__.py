from openvr_startup.observability.logging import LogCache, configure_logging, set_state

__all__ = ["LogCache", "configure_logging", "set_state"]

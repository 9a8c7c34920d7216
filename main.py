from __future__ import annotations


def main() -> None:
    from openvr_startup.runtime.lifecycle import entrypoint

    entrypoint()


if __name__ == "__main__":
    main()

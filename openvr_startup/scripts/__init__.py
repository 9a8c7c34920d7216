from openvr_startup.scripts.launcher import ScriptDirectories, ScriptLauncher, ScriptPhase

__all__ = ["ScriptDirectories", "ScriptLauncher", "ScriptPhase"]

"""Setup orchestrator (declarative, restriction-aware).

Core design goals:
- One instruction per line, executed strictly in file order
- Platform and version restrictions declared outside the setup file
- Per-platform prerequisite scripts, run at most once per session
- A failing line never stops the lines after it
- Centralized logging
"""

__all__ = []

"""Fleet edge-device bootstrap (Python-first, single pass).

Core design goals:
- One ordered pipeline, re-runnable until it converges
- Explicit configuration snapshot threaded through every stage
- Fatal vs best-effort failure policy per stage
- Best-effort enrollment with the fleet API
- Centralized logging
"""

__version__ = "1.0.0"

__all__ = ["__version__"]

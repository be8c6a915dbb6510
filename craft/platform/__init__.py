"""Platform primitives (subprocess execution)."""

from craft.platform.process import ProcessError, run, run_streaming

__all__ = ["ProcessError", "run", "run_streaming"]

"""voxpipe: configurable voice-to-text pipeline engine with stage benchmarking."""

from __future__ import annotations

__version__ = "0.3.0"

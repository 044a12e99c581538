"""Bundled numpy/scipy audio processing: decoding, noise gating, silence trimming."""

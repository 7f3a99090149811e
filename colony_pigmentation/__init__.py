"""
Colony pigmentation analysis: chroma-key colony masking, mask cleanup and
left-to-right pigmentation profiles averaged across images.
"""

__version__ = "1.0.0"

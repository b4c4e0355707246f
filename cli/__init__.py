"""
PixelChads CLI Package

Command line interface for the PixelChads collection registry.
"""

__version__ = "1.0.0"

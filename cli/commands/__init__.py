"""
PixelChads CLI Commands Package

Command modules for the PixelChads CLI.
"""

__all__ = ['admin', 'config', 'mint', 'registry', 'treasury']

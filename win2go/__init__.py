"""Windows To Go USB creator for Linux.

Partitions a USB drive, applies a Windows image from an installation ISO with
wimlib, copies the boot files and optionally stages drivers for first boot.
"""

from .__version__ import __version__

__all__ = ["__version__"]

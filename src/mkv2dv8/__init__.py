"""mkv2dv8 - Remux Dolby Vision Profile 7 MKV files into Profile 8.1 MP4 files."""

__version__ = "0.1.0"

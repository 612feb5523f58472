"""Access layers for Pillow, JSON files and FITS files."""

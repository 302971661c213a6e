"""Integration adapters: chat platforms, the web clipper, and the vault."""

"""Browser-side artifacts shipped as package data."""

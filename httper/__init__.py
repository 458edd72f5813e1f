"""httper: parse plain-text HTTP request files and send them."""

__version__ = "0.1.0"

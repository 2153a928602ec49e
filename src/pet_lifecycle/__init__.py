"""Pet lifecycle coordination core: adoption, custody, escrow and derived availability."""

__version__ = "0.1.0"

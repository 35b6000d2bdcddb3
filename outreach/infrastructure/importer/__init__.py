from .allowlist import AllowListProvider, clean_phone

__all__ = ["AllowListProvider", "clean_phone"]

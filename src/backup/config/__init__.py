from .config_loader import BackupConfig, mask_uri

__all__ = ["BackupConfig", "mask_uri"]

"""Per-service scanners and their rule sets."""

from .aks import new_aks_scanner
from .builtin import BASE_SCANNERS, new_base_scanners
from .kv import new_key_vault_scanner
from .st import StorageScanner, new_storage_scanner
from .vm import new_virtual_machine_scanner

__all__ = [
    "BASE_SCANNERS",
    "StorageScanner",
    "new_aks_scanner",
    "new_base_scanners",
    "new_key_vault_scanner",
    "new_storage_scanner",
    "new_virtual_machine_scanner",
]

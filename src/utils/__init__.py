"""
Utility modules for the contract signing backend
"""
from .config_loader import AppSettings, EmailSettings, PaymentSettings, load_settings

__all__ = [
    'AppSettings',
    'EmailSettings',
    'PaymentSettings',
    'load_settings',
]

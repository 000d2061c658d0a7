"""
API route modules.
"""

from bci_backend.api.routes import eeg, health, sessions

__all__ = ["eeg", "health", "sessions"]

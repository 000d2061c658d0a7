"""
Simulated EEG epochs.
"""

from bci_backend.eeg.simulator import Epoch, EEGSimulator, StimulusClass

__all__ = [
    "Epoch",
    "EEGSimulator",
    "StimulusClass",
]

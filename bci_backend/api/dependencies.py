"""
FastAPI dependencies for objects built once at startup.
"""

from fastapi import Request

from bci_backend.ml.lda_classifier import LDAClassifier
from bci_backend.pipeline.adaptive_session import AdaptiveSessionController
from bci_backend.pipeline.trial_pipeline import TrialPipeline


def get_pipeline(request: Request) -> TrialPipeline:
    return request.app.state.pipeline


def get_classifier(request: Request) -> LDAClassifier:
    return request.app.state.pipeline.classifier


def get_session_controller(request: Request) -> AdaptiveSessionController:
    return request.app.state.session_controller

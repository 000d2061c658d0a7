"""
EEG pipeline endpoints: simulate, preprocess, extract features, classify.
"""

from typing import List, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator

from bci_backend.api.dependencies import get_classifier, get_pipeline
from bci_backend.core.config import Settings, get_settings
from bci_backend.ml.lda_classifier import LDAClassifier
from bci_backend.pipeline.trial_pipeline import TrialPipeline
from bci_backend.signal_processing import FeatureVector

router = APIRouter()


class SignalResponse(BaseModel):
    """Simulated epoch."""
    timestamps: List[float]
    raw_signal: List[float]


class PreprocessRequest(BaseModel):
    """Preprocessing request."""
    raw_signal: List[float] = Field(min_length=1)
    timestamps: List[float] = Field(min_length=1)

    @model_validator(mode="after")
    def check_lengths(self):
        if len(self.raw_signal) != len(self.timestamps):
            raise ValueError("raw_signal and timestamps must have the same length")
        return self


class PreprocessResponse(BaseModel):
    """Preprocessing response."""
    raw_signal: List[float]
    filtered_signal: List[float]


class FeatureRequest(BaseModel):
    """Feature extraction request."""
    filtered_signal: List[float] = Field(min_length=1)
    timestamps: List[float] = Field(min_length=1)

    @model_validator(mode="after")
    def check_lengths(self):
        if len(self.filtered_signal) != len(self.timestamps):
            raise ValueError("filtered_signal and timestamps must have the same length")
        return self


class FeatureVectorModel(BaseModel):
    """Feature vector."""
    mean: float
    peak: float
    latency: float


class ClassificationResponse(BaseModel):
    """Classification result."""
    prediction: Literal["YES", "NO"]
    confidence: float


@router.get("/simulate", response_model=SignalResponse)
async def simulate(
    type: Literal["target", "nontarget"],
    noise_level: float = Query(0.5, ge=0.0, le=1.0),
    sampling_rate: int | None = Query(None, gt=0, le=2000),
    duration_ms: float | None = Query(None, gt=0, le=10000),
    pipeline: TrialPipeline = Depends(get_pipeline)
):
    """Simulate one epoch for a target or non-target stimulus."""
    epoch = pipeline.simulator.simulate(
        type,
        sampling_rate=sampling_rate,
        duration_ms=duration_ms,
        noise_level=noise_level
    )
    return epoch.to_dict()


@router.post("/preprocess", response_model=PreprocessResponse)
async def preprocess(
    request: PreprocessRequest,
    pipeline: TrialPipeline = Depends(get_pipeline)
):
    """Run the filter chain on a raw epoch."""
    filtered = pipeline.preprocessor.process(request.raw_signal)
    return {
        "raw_signal": request.raw_signal,
        "filtered_signal": filtered.tolist()
    }


@router.post("/extract-features", response_model=FeatureVectorModel)
async def extract_features(
    request: FeatureRequest,
    pipeline: TrialPipeline = Depends(get_pipeline)
):
    """Extract P300 window features from a filtered epoch."""
    features = pipeline.extractor.extract_features(request.filtered_signal, request.timestamps)
    return features.to_dict()


@router.post("/classify", response_model=ClassificationResponse)
async def classify(
    features: FeatureVectorModel,
    classifier: LDAClassifier = Depends(get_classifier)
):
    """Classify a feature vector."""
    prediction = classifier.predict(
        FeatureVector(mean=features.mean, peak=features.peak, latency=features.latency)
    )
    return prediction.to_dict()


@router.get("/training-data")
async def training_data(
    target_count: int = Query(30, ge=0, le=500),
    nontarget_count: int = Query(30, ge=0, le=500),
    pipeline: TrialPipeline = Depends(get_pipeline)
):
    """Generate labelled training epochs and return a five-sample preview."""
    epochs = pipeline.simulator.generate_training_data(
        target_count, nontarget_count, noise_level=0.5
    )
    return {
        "count": len(epochs),
        "target_count": target_count,
        "nontarget_count": nontarget_count,
        "samples": [
            {"signal": epoch.to_dict(), "label": epoch.label}
            for epoch in epochs[:5]
        ]
    }


@router.get("/classifier")
async def classifier_info(
    classifier: LDAClassifier = Depends(get_classifier),
    pipeline: TrialPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings)
):
    """Describe the classifier serving predictions."""
    return {
        "mode": settings.classifier_mode,
        "parameters": classifier.get_parameters(),
        "metrics": pipeline.get_metrics()
    }

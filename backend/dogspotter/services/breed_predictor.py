"""
Dog Spotter Backend — Breed Predictor Interface
================================================

What:  Abstract contract for the breed classifier that enriches new sightings.
How:   Concrete implementations inherit from BreedPredictor; DogService only
       ever sees this interface, so tests hand it a fake.
Who:   Called by DogService.create() when a dog has a photo but no breed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PredictionResult:
    """Classifier answer. `breed` is None when the model has no guess."""

    breed: Optional[str]
    confidence: Optional[float] = None


class BreedPredictor(ABC):
    """
    Contract:
        - predict() returns a PredictionResult or raises
        - Implementations translate their own transport errors into
          UpstreamUnavailableError
        - Callers treat every failure as "no prediction available"

    Implementations:
        - MLService: HTTP client for the external classifier
    """

    @abstractmethod
    async def predict(self, image_url: str, dog_id: str) -> PredictionResult:
        """
        Classify the dog in the image.

        Args:
            image_url: Public URL of the photo.
            dog_id:    Id of the sighting, forwarded for the classifier's logs.

        Raises:
            UpstreamUnavailableError: the classifier failed or is unreachable
            CircuitBreakerOpenError:  too many recent failures
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the classifier answers its health endpoint."""
        ...

"""Clients for the external image-to-image APIs."""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel

from .config import Config
from .errors import TransformationError

logger = logging.getLogger("zombie_transformer.providers")

ZOMBIE_PROMPT = (
    "zombie transformation, decaying flesh, pale dead skin, bloodshot red eyes, "
    "dark veins visible on face, sunken cheeks, undead creature, horror movie makeup, "
    "photorealistic, highly detailed face, scary, maintain face structure and features"
)
NEGATIVE_PROMPT = (
    "cartoon, anime, illustration, blurry, low quality, deformed face, "
    "extra limbs, distorted features, text, watermark"
)

TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}


@dataclass
class TransformationRequest:
    image: bytes
    media_type: str
    prompt: str = ZOMBIE_PROMPT
    negative_prompt: str = NEGATIVE_PROMPT
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


@dataclass(frozen=True)
class TransformationResult:
    src: str
    provider: str

    @property
    def is_inline(self) -> bool:
        return self.src.startswith("data:")


class PredictionUrls(BaseModel):
    get: Optional[str] = None


class Prediction(BaseModel):
    id: Optional[str] = None
    status: str
    output: Union[List[str], str, None] = None
    error: Optional[str] = None
    urls: PredictionUrls = PredictionUrls()


class Artifact(BaseModel):
    base64: str
    finishReason: Optional[str] = None


class GenerationResponse(BaseModel):
    artifacts: List[Artifact]


class Provider:
    """Sends one request upstream and blocks until the transformed image is available."""

    name = "provider"
    requires_resize = False
    parameters: Dict[str, Any] = {}

    def __init__(self, credential: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None) -> None:
        self.credential = credential
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_request(self, image: bytes, media_type: str) -> TransformationRequest:
        return TransformationRequest(image=image, media_type=media_type, parameters=dict(self.parameters))

    def transform(self, request: TransformationRequest) -> TransformationResult:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.credential}"}

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.exception("Upstream request to %s failed", url)
            raise TransformationError(f"Upstream request failed: {e}") from e

        if not response.ok:
            body = response.text
            logger.error("Upstream non-2xx status=%s body=%s", response.status_code, body[:400])
            raise TransformationError(
                f"{response.status_code} {response.reason}: {body}",
                status=response.status_code,
                body=body,
            )
        return response


class ReplicateProvider(Provider):
    """Hosted model runner: JSON prediction with a base64 data URL as input."""

    name = "replicate"
    parameters = {
        "prompt_strength": 0.75,
        "num_inference_steps": 28,
        "guidance_scale": 3.5,
        "output_format": "png",
        "output_quality": 90,
    }

    def __init__(self, credential: str, model: str = "black-forest-labs/flux-dev",
                 base_url: str = "https://api.replicate.com", poll_interval: float = 1.0,
                 **kwargs: Any) -> None:
        super().__init__(credential, **kwargs)
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval

    def transform(self, request: TransformationRequest) -> TransformationResult:
        payload = {
            "input": {
                "prompt": request.prompt,
                "image": request.data_url,
                **request.parameters,
            }
        }
        headers = {**self._headers(), "Prefer": "wait"}
        logger.info("Starting prediction on %s", self.model)
        response = self._send(
            "POST", f"{self.base_url}/v1/models/{self.model}/predictions", json=payload, headers=headers
        )
        prediction = self._parse(response)

        while prediction.status not in TERMINAL_STATUSES:
            if not prediction.urls.get:
                raise TransformationError(f"Prediction {prediction.id} is {prediction.status} with no poll URL")
            time.sleep(self.poll_interval)
            prediction = self._parse(self._send("GET", prediction.urls.get, headers=self._headers()))

        if prediction.status != "succeeded":
            raise TransformationError(
                f"Prediction {prediction.status}: {prediction.error or 'no error message'}",
                body=prediction.error,
            )

        output = prediction.output
        if isinstance(output, list):
            output = output[0] if output else None
        if not output:
            raise TransformationError("Prediction succeeded without an output image")

        logger.info("Prediction %s complete", prediction.id)
        return TransformationResult(src=output, provider=self.name)

    @staticmethod
    def _parse(response: requests.Response) -> Prediction:
        try:
            return Prediction.model_validate(response.json())
        except ValueError as e:
            raise TransformationError(
                f"Malformed prediction response: {e}", status=response.status_code, body=response.text
            ) from e


class StabilityProvider(Provider):
    """Direct diffusion endpoint: multipart image-to-image with weighted prompts."""

    name = "stability"
    requires_resize = True
    parameters = {
        "init_image_mode": "IMAGE_STRENGTH",
        "image_strength": 0.35,
        "cfg_scale": 7,
        "steps": 30,
        "samples": 1,
    }

    def __init__(self, credential: str, engine: str = "stable-diffusion-xl-1024-v1-0",
                 base_url: str = "https://api.stability.ai", **kwargs: Any) -> None:
        super().__init__(credential, **kwargs)
        self.engine = engine
        self.base_url = base_url.rstrip("/")

    def transform(self, request: TransformationRequest) -> TransformationResult:
        data = {
            "text_prompts[0][text]": request.prompt,
            "text_prompts[0][weight]": "1",
            "text_prompts[1][text]": request.negative_prompt,
            "text_prompts[1][weight]": "-1",
            **{key: str(value) for key, value in request.parameters.items()},
        }
        files = {"init_image": ("init_image.png", request.image, request.media_type)}
        headers = {**self._headers(), "Accept": "application/json"}

        logger.info("Calling %s image-to-image", self.engine)
        response = self._send(
            "POST",
            f"{self.base_url}/v1/generation/{self.engine}/image-to-image",
            data=data,
            files=files,
            headers=headers,
        )
        try:
            generation = GenerationResponse.model_validate(response.json())
        except ValueError as e:
            raise TransformationError(
                f"Malformed generation response: {e}", status=response.status_code, body=response.text
            ) from e
        if not generation.artifacts:
            raise TransformationError("Generation returned no artifacts", status=response.status_code)

        return TransformationResult(
            src=f"data:image/png;base64,{generation.artifacts[0].base64}",
            provider=self.name,
        )


def build_provider(config: Config, session: Optional[requests.Session] = None) -> Provider:
    if not config.provider_credential:
        logger.warning("%s is not set; upstream calls will be rejected", config.credential_variable)
    if config.provider == "stability":
        return StabilityProvider(
            config.stability_api_key,
            engine=config.stability_engine,
            session=session,
            timeout=config.upstream_timeout,
        )
    return ReplicateProvider(
        config.replicate_api_token,
        model=config.replicate_model,
        session=session,
        timeout=config.upstream_timeout,
    )

"""
src/whisk_client — client for the Whisk image-generation service.

Module layout
-------------
config.py      — endpoints, public API key, request constants, generation defaults
result.py      — Success / Failure result values, ErrorCategory, PreconditionError
models.py      — Credentials, Prompt, RefinementRequest, default filling
executor.py    — header and URL construction, HTTP transport function
parser.py      — JSON decoding, service-error detection, envelope field extraction
session.py     — credential store and lazy authorization-token bootstrap
client.py      — WhiskClient with every single-call operation
refinement.py  — two-phase (rewrite, then generate) image refinement
storage.py     — writing base64 images to disk

Public interface
----------------
Create a client (raises PreconditionError for a missing/placeholder cookie):
    client = WhiskClient(Credentials(cookie="..."))

Every operation returns Success(value) or Failure(ErrorInfo):
    result = client.generate_image(Prompt(prompt="a cat on a roof"))
    if result.is_ok:
        ...

Refine an image and save one stored image:
    client.refine_image(RefinementRequest(...))
    client.save_image_direct(media_key, "out/cat.png")
"""

from .client import WhiskClient
from .models import Credentials, Prompt, RefinementRequest
from .result import (
    ErrorCategory,
    ErrorInfo,
    Failure,
    PreconditionError,
    Result,
    Success,
)

__all__ = [
    # Client
    "WhiskClient",
    # Request types
    "Credentials",
    "Prompt",
    "RefinementRequest",
    # Results
    "Result",
    "Success",
    "Failure",
    "ErrorInfo",
    "ErrorCategory",
    "PreconditionError",
]

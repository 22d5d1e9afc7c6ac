"""
Input validation that runs before any request is built.

Rules are evaluated in a fixed order and the first violated rule is reported;
the remaining rules are not evaluated.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from mp3stego_client.exceptions import ValidationFailure
from mp3stego_client.models.requests import (
    Draft,
    EmbedDraft,
    ExtractDraft,
    FileInput,
    LsbBitsInput,
    Method,
    PsnrDraft,
    parse_lsb_bits,
)

log = logging.getLogger(__name__)

MAX_KEY_CODE_POINT = 255
MAX_FILE_SIZE_BYTES = 100 * 1024 * 1024  # 100 MiB
MIN_LSB_BITS = 1
MAX_LSB_BITS = 4

KEY_CHARSET_MESSAGE = "Key can only contain ASCII characters (0-255)"
KEY_EMPTY_MESSAGE = "Key cannot be empty"
FILE_REQUIRED_MESSAGE = "File is required"
FILE_MULTIPLE_MESSAGE = "Only one file may be selected"
FILE_NOT_AUDIO_MESSAGE = "Please select a valid audio file"
FILE_TOO_LARGE_MESSAGE = "File size must be less than 100MB"
LSB_BITS_MESSAGE = "LSB bits must be between 1 and 4"


@dataclass(frozen=True)
class Violation:
    """The first rule a draft broke, and the form field it concerns."""

    field: str
    message: str


@dataclass(frozen=True)
class KeyFilterResult:
    """Outcome of the live key filter applied on each keystroke."""

    value: str
    warning: Optional[str] = None

    @property
    def stripped(self) -> bool:
        return self.warning is not None


def is_key_representable(key: str) -> bool:
    """True when every code point of the key fits in a single byte."""
    return all(ord(ch) <= MAX_KEY_CODE_POINT for ch in key)


def filter_key_input(raw: str) -> KeyFilterResult:
    """
    Strips characters that cannot be sent as a byte string.

    Advisory only: submission-time validation re-checks the key regardless of
    what this filter did.
    """
    filtered = "".join(ch for ch in raw if ord(ch) <= MAX_KEY_CODE_POINT)
    if len(filtered) != len(raw):
        log.debug(f"Key filter removed {len(raw) - len(filtered)} character(s).")
        return KeyFilterResult(value=filtered, warning=KEY_CHARSET_MESSAGE)
    return KeyFilterResult(value=filtered)


@dataclass(frozen=True)
class FileRule:
    field: str
    files: FileInput
    audio: bool = False


@dataclass(frozen=True)
class ValidationPlan:
    """The draft-independent view of what a form needs checked."""

    key_field: Optional[str] = None
    key: str = ""
    key_required: bool = False
    files: Tuple[FileRule, ...] = ()
    lsb_field: Optional[str] = None
    method: Optional[Method] = None
    lsb_bits: LsbBitsInput = None


def plan_for(draft: Draft) -> ValidationPlan:
    """Describes which fields of a draft are subject to which rules."""
    if isinstance(draft, EmbedDraft):
        return ValidationPlan(
            key_field="embed_key",
            key=draft.key,
            key_required=True,
            files=(
                FileRule("embed_mp3_file", draft.mp3_files, audio=True),
                FileRule("embed_secret_file", draft.secret_files),
            ),
            lsb_field="embed_lsb",
            method=draft.method,
            lsb_bits=draft.lsb_bits,
        )
    if isinstance(draft, ExtractDraft):
        # An empty key means "no key was used"; it is only required when the
        # user asks for decryption.
        return ValidationPlan(
            key_field="extract_key",
            key=draft.key,
            key_required=draft.use_encryption,
            files=(FileRule("extract_mp3_file", draft.mp3_files, audio=True),),
            lsb_field="extract_lsb",
            method=draft.method,
            lsb_bits=draft.lsb_bits,
        )
    if isinstance(draft, PsnrDraft):
        return ValidationPlan(
            files=(
                FileRule("psnr_original_file", draft.original_files, audio=True),
                FileRule("psnr_modified_file", draft.modified_files, audio=True),
            ),
        )
    raise TypeError(f"Unsupported draft type: {type(draft).__name__}")


def _check_key_charset(plan: ValidationPlan) -> Optional[Violation]:
    if plan.key_field and not is_key_representable(plan.key):
        return Violation(plan.key_field, KEY_CHARSET_MESSAGE)
    return None


def _check_key_presence(plan: ValidationPlan) -> Optional[Violation]:
    if plan.key_field and plan.key_required and len(plan.key) < 1:
        return Violation(plan.key_field, KEY_EMPTY_MESSAGE)
    return None


def _check_file_presence(plan: ValidationPlan) -> Optional[Violation]:
    for rule in plan.files:
        if not rule.files:
            return Violation(rule.field, FILE_REQUIRED_MESSAGE)
        if len(rule.files) > 1:
            return Violation(rule.field, FILE_MULTIPLE_MESSAGE)
    return None


def _check_file_type(plan: ValidationPlan) -> Optional[Violation]:
    for rule in plan.files:
        if rule.audio and not rule.files[0].media_type.startswith("audio/"):
            return Violation(rule.field, FILE_NOT_AUDIO_MESSAGE)
    return None


def _check_file_size(plan: ValidationPlan) -> Optional[Violation]:
    for rule in plan.files:
        if rule.files[0].size > MAX_FILE_SIZE_BYTES:
            return Violation(rule.field, FILE_TOO_LARGE_MESSAGE)
    return None


def _check_lsb_bits(plan: ValidationPlan) -> Optional[Violation]:
    if plan.method is not Method.LSB or not plan.lsb_field:
        return None
    bits = parse_lsb_bits(plan.lsb_bits)
    if bits is None or not MIN_LSB_BITS <= bits <= MAX_LSB_BITS:
        return Violation(plan.lsb_field, LSB_BITS_MESSAGE)
    return None


RULES: Sequence[Callable[[ValidationPlan], Optional[Violation]]] = (
    _check_key_charset,
    _check_key_presence,
    _check_file_presence,
    _check_file_type,
    _check_file_size,
    _check_lsb_bits,
)


def validate(draft: Draft) -> Optional[Violation]:
    """
    Runs every rule in precedence order against a draft.

    Returns:
        The first Violation found, or None when the draft may be submitted.
    """
    plan = plan_for(draft)
    for rule in RULES:
        violation = rule(plan)
        if violation is not None:
            log.debug(f"Validation failed on '{violation.field}': {violation.message}")
            return violation
    return None


def ensure_valid(draft: Draft) -> None:
    """Raises ValidationFailure when the draft violates a rule."""
    violation = validate(draft)
    if violation is not None:
        raise ValidationFailure(violation)

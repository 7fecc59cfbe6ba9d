import re

from .exceptions import InvariantViolation

_DOCUMENT_RE = re.compile(r"<html[\s>]", re.IGNORECASE)


def assert_renderable_html(html):
    if not html or not html.strip():
        raise InvariantViolation("Rendered website is empty.")

    if not _DOCUMENT_RE.search(html):
        raise InvariantViolation("Rendered website is not an HTML document.")


def assert_promotion(*, current_number, target_number):
    """is_current only ever moves forward."""
    if current_number is not None and target_number < current_number:
        raise InvariantViolation(
            f"Cannot make version {target_number} current while version {current_number} is live."
        )

"""
Website renderers.

A renderer turns a customer profile plus a natural-language change
description into a complete HTML document. The workflow treats it as a
black box that either returns a RenderResult or raises RendererError.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Protocol

import openai
from flask import render_template
from openai import OpenAI

_FENCE_RE = re.compile(r"```(?:html)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)
_DOCUMENT_RE = re.compile(r"(<!DOCTYPE html.*?</html>|<html.*?</html>)", re.IGNORECASE | re.DOTALL)

MAX_DESCRIPTION_LENGTH = 200


class RendererError(Exception):
    """Render failed: network error, timeout or unusable output."""


@dataclass(frozen=True)
class CustomerProfile:
    """Read-only business data handed to a renderer."""

    id: str
    email: str
    business_name: str
    industry: Optional[str] = None
    phone: Optional[str] = None
    website_url: Optional[str] = None
    is_paying: bool = False

    @classmethod
    def from_customer(cls, customer) -> "CustomerProfile":
        return cls(
            id=customer.id,
            email=customer.email,
            business_name=customer.business_name or "Your Business",
            industry=customer.industry,
            phone=customer.phone,
            website_url=customer.website_url,
            is_paying=customer.is_paying,
        )


@dataclass(frozen=True)
class RenderResult:
    html: str
    version_description: str


class WebsiteRenderer(Protocol):
    def render(
        self,
        customer: CustomerProfile,
        change_description: str,
        *,
        current_html: Optional[str] = None,
    ) -> RenderResult:
        ...


def summarize_change(change_description: str) -> str:
    first_line = (change_description or "").strip().splitlines()[0:1]
    summary = first_line[0].strip() if first_line else "Website update"
    if len(summary) > MAX_DESCRIPTION_LENGTH:
        summary = summary[: MAX_DESCRIPTION_LENGTH - 3].rstrip() + "..."
    return summary


def extract_html(content: str) -> Optional[str]:
    """Pull the HTML document out of an LLM reply (fenced or bare)."""
    if not content:
        return None

    fenced = _FENCE_RE.search(content)
    if fenced:
        content = fenced.group(1)

    document = _DOCUMENT_RE.search(content)
    return document.group(1).strip() if document else None


class TemplateWebsiteRenderer:
    """Offline renderer backed by a Jinja template; used in development."""

    template_name = "site/website.html"

    def render(self, customer, change_description, *, current_html=None):
        try:
            html = render_template(
                self.template_name,
                customer=customer,
                change_description=change_description,
            )
        except Exception as exc:
            raise RendererError(f"Template render failed: {exc}") from exc

        return RenderResult(html=html, version_description=summarize_change(change_description))


class OpenAIWebsiteRenderer:
    SYSTEM_PROMPT = (
        "You are a senior web designer. Produce one complete, self-contained HTML5 "
        "document (inline CSS, no external scripts) for a small business website. "
        "Apply every requested change. Reply with the HTML document only."
    )

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        timeout_seconds: float,
        max_retries: int = 2,
        client: Optional[OpenAI] = None,
    ):
        if client is None and not api_key:
            raise ValueError("OPENAI_API_KEY is required for the OpenAI renderer")

        self.model = model
        self.timeout_seconds = timeout_seconds
        self._client = client or OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=max_retries,
        )

    def _prompt(self, customer, change_description, current_html):
        lines = [
            f"Business name: {customer.business_name}",
            f"Industry: {customer.industry or 'services'}",
            f"Contact email: {customer.email}",
        ]
        if customer.phone:
            lines.append(f"Phone: {customer.phone}")

        lines.append("")
        lines.append("Requested changes:")
        lines.append(change_description)

        if current_html:
            lines.append("")
            lines.append("Current website HTML (modify it, keep what was not asked to change):")
            lines.append(current_html)

        return "\n".join(lines)

    def render(self, customer, change_description, *, current_html=None):
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                temperature=0.4,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self._prompt(customer, change_description, current_html)},
                ],
            )
        except openai.APITimeoutError as exc:
            raise RendererError(f"Renderer timed out after {self.timeout_seconds}s") from exc
        except openai.OpenAIError as exc:
            raise RendererError(f"OpenAI request failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        html = extract_html(content or "")
        if not html:
            raise RendererError("Renderer reply did not contain an HTML document")

        return RenderResult(html=html, version_description=summarize_change(change_description))

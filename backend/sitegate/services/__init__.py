from dataclasses import dataclass

from .notifications import LoggingNotifier, NotificationDispatcher, SendGridNotifier
from .renderer import OpenAIWebsiteRenderer, TemplateWebsiteRenderer, WebsiteRenderer


@dataclass
class WorkflowServices:
    renderer: WebsiteRenderer
    notifier: NotificationDispatcher


def build_renderer(config):
    if config["RENDERER"] == "openai":
        return OpenAIWebsiteRenderer(
            api_key=config["OPENAI_API_KEY"],
            model=config["OPENAI_MODEL"],
            timeout_seconds=config["RENDERER_TIMEOUT_SECONDS"],
            max_retries=config["RENDERER_MAX_RETRIES"],
        )
    if config["RENDERER"] == "template":
        return TemplateWebsiteRenderer()
    raise ValueError(f"Unknown RENDERER: {config['RENDERER']}")


def build_notifier(config):
    if config.get("SENDGRID_API_KEY"):
        return SendGridNotifier(
            api_key=config["SENDGRID_API_KEY"],
            sender=config["MAIL_SENDER"],
            sender_name=config["MAIL_SENDER_NAME"],
            timeout=config["NOTIFICATION_TIMEOUT_SECONDS"],
        )
    return LoggingNotifier()


def build_services(config, *, renderer=None, notifier=None) -> WorkflowServices:
    return WorkflowServices(
        renderer=renderer or build_renderer(config),
        notifier=notifier or build_notifier(config),
    )


def render_budget_seconds(config):
    """Longest a single render may hold a claimed job, retries included."""
    if config["RENDERER"] != "openai":
        return 0
    return config["RENDERER_TIMEOUT_SECONDS"] * (config["RENDERER_MAX_RETRIES"] + 1)

import pytest

from sitegate import create_app
from sitegate.extensions import db
from sitegate.application.jobs.consumer import RegenerationConsumer
from sitegate.services.notifications import NotificationError, NotificationKind
from sitegate.services.renderer import RenderResult


class FakeRenderer:
    """Scripted renderer: records every call, optionally raises or runs a hook."""

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self.html = None
        self.during_render = None

    def render(self, customer, change_description, *, current_html=None):
        self.calls.append({
            "customer_id": customer.id,
            "description": change_description,
            "current_html": current_html,
        })

        if self.during_render is not None:
            hook, self.during_render = self.during_render, None
            hook()

        if self.fail_with is not None:
            raise self.fail_with

        html = self.html or (
            "<!DOCTYPE html><html><body>"
            f"<h1>{customer.business_name}</h1><p>{change_description}</p>"
            f"<!-- render {len(self.calls)} -->"
            "</body></html>"
        )
        return RenderResult(html=html, version_description=change_description.splitlines()[0])


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.fail_kinds = set()

    def send(self, kind, recipient, context):
        kind = NotificationKind(kind)
        if kind in self.fail_kinds:
            raise NotificationError(f"{kind.value} bounced")
        self.sent.append((kind, recipient, context))

    def of_kind(self, kind):
        return [(recipient, context) for sent_kind, recipient, context in self.sent if sent_kind == kind]


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(tmp_path, renderer, notifier):
    app = create_app(
        "testing",
        renderer=renderer,
        notifier=notifier,
        config_overrides={"PUBLISH_FOLDER": str(tmp_path / "published")},
    )

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def consumer(app):
    return RegenerationConsumer.from_app(app)


@pytest.fixture
def no_cooldown(app):
    app.config["REVISION_COOLDOWN_SECONDS"] = 0

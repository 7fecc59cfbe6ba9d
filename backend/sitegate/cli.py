import signal

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext
from flask_jwt_extended import create_access_token

from .application.jobs.consumer import RegenerationConsumer

worker_cli = AppGroup("worker", help="Run the regeneration queue consumer.")


@worker_cli.command("run")
def run_worker():
    """Poll the queue until interrupted."""
    stopping = {"flag": False}

    def _stop(signum, frame):
        current_app.logger.info(f"Received signal {signum}; finishing the current job")
        stopping["flag"] = True

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)

    RegenerationConsumer.from_app().run_forever(should_stop=lambda: stopping["flag"])


@worker_cli.command("drain")
@click.option("--limit", type=int, default=None, help="Stop after this many jobs.")
def drain_queue(limit):
    """Process every job that is ready now, then exit."""
    outcomes = RegenerationConsumer.from_app().drain(limit=limit)
    for outcome in outcomes:
        click.echo(f"{outcome.request_id}: {outcome.status}")
    click.echo(f"Processed {len(outcomes)} job(s)")


@click.command("issue-operator-token")
@click.argument("name")
@with_appcontext
def issue_operator_token(name):
    """Print a non-expiring admin JWT for an operator."""
    token = create_access_token(
        identity=name,
        additional_claims={"role": "admin"},
        expires_delta=False,
    )
    click.echo(token)


def register_cli(app):
    app.cli.add_command(worker_cli)
    app.cli.add_command(issue_operator_token)

import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, PaymentMethodType
from .services import get_services


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all database tables."""
    os.makedirs(current_app.instance_path, exist_ok=True)
    db.create_all()
    click.echo("Database tables created successfully.")


@click.command("seed-catalog")
@with_appcontext
def seed_catalog_command():
    """Add a few default payment methods if none exist yet."""
    catalog = get_services().catalog
    if catalog.list_methods():
        click.echo("Payment methods already present, nothing to do.")
        return
    for name, kind in (
        ("Cash", PaymentMethodType.CASH),
        ("Card", PaymentMethodType.CARD),
        ("Bank transfer", PaymentMethodType.BANK),
    ):
        catalog.create_method(name, kind.value)
    click.echo("Seeded %d payment methods." % len(catalog.list_methods()))


@click.command("add-provider")
@click.argument("name")
@click.option("--category", default=None)
@with_appcontext
def add_provider_command(name, category):
    """Register a service provider."""
    outcome = get_services().catalog.create_provider(name, category=category)
    if not outcome:
        raise click.ClickException(outcome.detail)
    click.echo(f"Service provider {outcome.value.id}: {outcome.value.name}")


@click.command("ingest-folder")
@click.argument("folder", type=click.Path(exists=True, file_okay=False))
@click.option("--email", required=True, help="Owner of the ingested files.")
@click.option("--ocr/--no-ocr", default=False, help="Run OCR inline after each upload.")
@click.option("--remove", is_flag=True, help="Delete source files once ingested.")
@with_appcontext
def ingest_folder_command(folder, email, ocr, remove):
    """Upload every supported file found in FOLDER for the given user."""
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"No user with email {email}")

    # OCR runs in this process rather than on the worker
    files = get_services(inline_ocr=True).files
    added = skipped = 0
    for name in sorted(os.listdir(folder)):
        path = os.path.join(folder, name)
        if not os.path.isfile(path):
            continue
        with open(path, "rb") as fh:
            data = fh.read()
        outcome = files.upload(user.id, name, data)
        if not outcome:
            current_app.logger.info("Skipped %s: %s", name, outcome.detail)
            skipped += 1
            continue
        added += 1
        if ocr:
            files.trigger_ocr(outcome.value.id, user.id)
        if remove:
            os.remove(path)
    click.echo(f"Ingested {added} file(s), skipped {skipped}.")


def register_cli(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_catalog_command)
    app.cli.add_command(add_provider_command)
    app.cli.add_command(ingest_folder_command)

"""Out-of-band account creation: python seed.py create-admin EMAIL PASSWORD"""
import click
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

import database
from config import Settings
from schemas import Admin
from security import get_password_hash


@click.group()
def cli():
    pass


@cli.command("create-admin")
@click.argument("email")
@click.argument("password")
@click.option("--role", type=click.Choice(["admin", "user"]), default="admin", show_default=True)
def create_admin(email, password, role):
    """Creates an account with a bcrypt-hashed password."""
    settings = Settings()
    db = database.connect(settings)
    database.ensure_indexes(db)
    try:
        account = Admin(email=email, password=get_password_hash(password), role=role)
    except PydanticValidationError as e:
        raise click.BadParameter(str(e), param_hint="email")
    try:
        doc = database.create_document(db, database.ADMIN, account)
    except DuplicateKeyError:
        raise click.ClickException(f"An account with email {email} already exists")
    click.echo(f"Created {role} {doc['email']} with id {doc['_id']}")


if __name__ == "__main__":
    cli()

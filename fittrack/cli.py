# fittrack/cli.py
import click
from flask import current_app
from flask.cli import with_appcontext

from . import db
from .models.user import User
from .models.workout import Workout


def assign_orphan_workouts(email=None):
    """
    Give every workout without an owner to the user with `email`, or to the
    earliest registered user. Returns (user, count).
    """
    if email:
        user = User.find_by_email(email)
    else:
        user = User.query.order_by(User.created_at.asc(), User.id.asc()).first()

    if not user:
        return None, 0

    count = Workout.query.filter(Workout.user_id.is_(None)).update(
        {Workout.user_id: user.id}, synchronize_session=False
    )
    db.session.commit()
    return user, count


@click.command("assign-orphan-workouts")
@click.option("--email", default=None, help="Owner for the orphaned workouts (defaults to the first user).")
@with_appcontext
def assign_orphan_workouts_command(email):
    """Attach workouts that have no owner to a user."""
    user, count = assign_orphan_workouts(email)
    if user is None:
        raise click.ClickException("No matching user found")

    current_app.logger.info(f"[cli] assigned {count} orphaned workouts to user_id={user.id}")
    click.echo(f"Assigned {count} workouts to {user.email}")

    remaining = Workout.query.filter(Workout.user_id.is_(None)).count()
    if remaining:
        click.echo(f"Warning: {remaining} workouts still have no owner")

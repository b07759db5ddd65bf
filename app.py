"""
Main Flask application for chore champ.

This module creates the Flask application, configures the database and
logging, and defines the routes for household onboarding and registration.
Responses are JSON.

Key routes:

* ``POST /`` or ``POST /onboarding`` – submit a finished onboarding form
  (``householdName``, plus ``areas`` and ``chores`` as JSON strings).
* ``GET /onboarding`` – show the onboarding wizard state kept in the session.
* ``POST /onboarding/<action>`` – apply the posted inputs and one wizard
  action. The ``submit`` action sends the draft through the same pipeline as
  ``POST /onboarding``.
* ``POST /onboarding/reset`` – discard the wizard draft.
* ``GET /households/<household_id>`` – read a household back with its areas
  and chores.
* ``DELETE /areas/<area_id>`` – remove an area and its chore assignments.
* ``POST /register`` – create a new user account.

Configuration defaults live in :func:`create_app`. Any of them can be
overridden with ``CHORE_CHAMP_`` prefixed environment variables, e.g.
``CHORE_CHAMP_SQLALCHEMY_DATABASE_URI``. To serve the app with Gunicorn use
``gunicorn "app:create_app()"``.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from flask import Flask, abort, jsonify, request, session
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from errors import PersistenceError, TransitionError, ValidationError
from ids import new_id
from models import User, db
from onboarding import delete_area, load_household, submit_onboarding
from schemas import validate_registration
from wizard import INPUT_FIELDS, Step, WizardState, serialize, set_input, transition

WIZARD_KEY = "wizard"


def _error(status: int, message: str):
    return jsonify(error={"status": status, "message": message}), status


def create_app(test_config: Optional[Mapping] = None) -> Flask:
    """Factory function for creating the Flask application.

    Parameters
    ----------
    test_config:
        Optional settings applied last, after environment overrides.

    Returns
    -------
    Flask
        A configured Flask application.
    """
    app = Flask(__name__)
    app.config.from_mapping(
        SQLALCHEMY_DATABASE_URI="sqlite:///database.db",
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        # IMPORTANT: change this secret in a real deployment
        SECRET_KEY="change-me-secret-key",
        LOG_LEVEL="INFO",
    )
    app.config.from_prefixed_env("CHORE_CHAMP")
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)

    # Create tables if they don't exist
    with app.app_context():
        db.create_all()

    def load_wizard() -> WizardState:
        if WIZARD_KEY in session:
            return WizardState.from_dict(session[WIZARD_KEY])
        return WizardState()

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        app.logger.warning("rejected submission: %s", error.errors["fieldErrors"])
        return jsonify(error=error.errors, fields=error.fields), 400

    @app.errorhandler(TransitionError)
    def handle_transition_error(error: TransitionError):
        return _error(409, str(error))

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(error: PersistenceError):
        app.logger.exception("onboarding submission failed")
        return _error(500, str(error))

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return _error(error.code or 500, error.description or error.name)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.exception("unhandled error")
        return _error(500, "Internal Server Error")

    @app.route("/", methods=["POST"])
    @app.route("/onboarding", methods=["POST"])
    def submit():
        """Validate and store a finished onboarding form."""
        household_id = submit_onboarding(db.session, request.form.to_dict())
        return jsonify(status="ok", householdId=household_id)

    @app.route("/onboarding", methods=["GET"])
    def wizard_state():
        """Return the current wizard state."""
        return jsonify(load_wizard().to_dict())

    @app.route("/onboarding/reset", methods=["POST"])
    def wizard_reset():
        """Drop the wizard draft and start over."""
        session.pop(WIZARD_KEY, None)
        return jsonify(WizardState().to_dict())

    @app.route("/onboarding/<action>", methods=["POST"])
    def wizard_action(action: str):
        """Apply posted inputs, then one wizard action."""
        state = load_wizard()
        for name in INPUT_FIELDS:
            if name in request.form:
                state = set_input(state, name, request.form[name])
        state = transition(state, action)

        if state.step is Step.SUBMITTED:
            household_id = submit_onboarding(db.session, serialize(state.draft))
            session.pop(WIZARD_KEY, None)
            return jsonify(status="ok", householdId=household_id)

        session[WIZARD_KEY] = state.to_dict()
        return jsonify(state.to_dict())

    @app.route("/households/<household_id>")
    def household_detail(household_id: str):
        """Return a household with its areas and their chores."""
        household = load_household(db.session, household_id)
        if household is None:
            abort(404, description="household not found")
        return jsonify(household)

    @app.route("/areas/<area_id>", methods=["DELETE"])
    def area_delete(area_id: str):
        """Delete an area together with its chore assignments."""
        if not delete_area(db.session, area_id):
            abort(404, description="area not found")
        return jsonify(status="ok")

    @app.route("/register", methods=["POST"])
    def register():
        """Create a user account with a hashed password."""
        form = validate_registration(request.form.to_dict())

        if User.query.filter_by(email=form.email).first():
            raise ValidationError(
                {"formErrors": [], "fieldErrors": {"email": ["Email is already registered"]}},
                {"name": form.name, "email": form.email},
            )

        user = User(
            id=new_id(),
            name=form.name,
            email=form.email,
            password=generate_password_hash(form.password),
        )
        db.session.add(user)
        db.session.commit()
        app.logger.info("registered user %s", user.id)
        return jsonify(status="ok", userId=user.id), 201

    return app


if __name__ == "__main__":  # pragma: no cover
    # When running locally with `python app.py`, use Flask's dev server
    create_app().run(host="0.0.0.0", port=5000, debug=True)

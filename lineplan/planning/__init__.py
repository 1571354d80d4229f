"""
Planning Module
Flask Blueprint for the production planning session.

This module provides routes for reading and editing the primary sewing strip,
the working calendar and the dependent stage schedules, plus stateless access
to the scheduling engine operations.
"""
from flask import Blueprint

planning_bp = Blueprint("planning", __name__)

from lineplan.planning import routes  # noqa: E402,F401

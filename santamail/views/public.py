from __future__ import annotations

from flask import Blueprint, jsonify
from flask.views import MethodView

from ..matching import is_feasible
from ..models import Exclusion, Participant
from ..services.roster import load_roster


public_bp = Blueprint("public", __name__)


class StatusView(MethodView):
    def get(self):
        people, forbidden = load_roster()
        return jsonify(
            participants=Participant.query.count(),
            exclusions=Exclusion.query.count(),
            feasible=is_feasible([p.name for p in people], forbidden),
        )


public_bp.add_url_rule("/", view_func=StatusView.as_view("status"))

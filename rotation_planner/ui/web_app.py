"""
Web application module for the Rotation Planner.

This module contains the Flask web server that provides JSON API endpoints
for editing rotation plans, generating fair rotations and reporting
projected playing time.
"""
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request

from ..models import LineupInvariantError, PayloadDecodeError, ScheduleConfig, Substitution
from ..services import (
    BatchWriteError, PlanNotFoundError, PlanService, PlanStoreError, ServiceFactory,
    StaticRosterProvider, validate_rotation_plan
)
from ..utils import APP_TITLE, DEFAULT_FIELD_SIZE, DEFAULT_HOST, DEFAULT_PORT

logger = logging.getLogger(__name__)


class WebAppState:
    """
    State holder for the web application.

    Keeps one PlanService per plan, created through the service factory.
    """

    def __init__(self, service_factory: Optional[ServiceFactory] = None):
        self.service_factory = service_factory or ServiceFactory()
        self.plan_services: Dict[str, PlanService] = {}

    def plan_service(self, plan_id: str) -> PlanService:
        """Service for a plan, loading it on first use and catching up with the store otherwise."""
        service = self.plan_services.get(plan_id)
        if service is None:
            service = self.service_factory.create_plan_service(plan_id)
            self.plan_services[plan_id] = service
        else:
            service.process_external_updates()
        return service

    def forget(self, plan_id: str) -> None:
        service = self.plan_services.pop(plan_id, None)
        if service is not None:
            service.close()


def _error_response(e: Exception):
    """Map an exception to a JSON error response."""
    if isinstance(e, PlanNotFoundError):
        status = 404
    elif isinstance(e, BatchWriteError):
        return jsonify({
            "success": False,
            "error": str(e),
            "failed": [str(k) for k in e.failed],
            "succeeded": [str(k) for k in e.succeeded],
        }), 502
    elif isinstance(e, PlanStoreError):
        status = 502
    elif isinstance(e, (ValueError, KeyError, IndexError, TypeError, LineupInvariantError, PayloadDecodeError)):
        status = 400
    else:
        logger.exception("Unexpected error")
        status = 500
    return jsonify({"success": False, "error": str(e)}), status


def _rebase_data(result) -> Dict[str, Any]:
    return {
        "edited_ordinal": result.edited_ordinal,
        "lineup": result.edited_lineup.as_dict(),
        "updated_ordinals": result.changed_ordinals,
        "warnings": result.warnings,
    }


def create_app(app_state: Optional[WebAppState] = None) -> Flask:
    """
    Create and configure the Flask application with API endpoints.

    Args:
        app_state: State holder; a fresh in-memory one is created when omitted

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    state = app_state or WebAppState()
    app.config["APP_STATE"] = state

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"success": True, "app": APP_TITLE})

    # ==================== Roster ==================== #

    @app.route("/api/roster", methods=["POST"])
    def update_roster():
        """Replace the roster with {"players": [...], "positions": [...]}."""
        try:
            data = request.get_json() or {}
            roster = StaticRosterProvider.from_dict(data)
            state.service_factory.configure_roster(roster)
            return jsonify({
                "success": True,
                "message": f"Roster updated with {len(roster.list_players())} players",
            })
        except Exception as e:
            return _error_response(e)

    @app.route("/api/players", methods=["GET"])
    def get_players():
        try:
            players = state.service_factory.roster.list_players()
            return jsonify({
                "success": True,
                "players": [p.to_dict() for p in players],
                "positions": [p.to_dict() for p in state.service_factory.roster.list_positions()],
                "count": len(players),
            })
        except Exception as e:
            return _error_response(e)

    # ==================== Plans ==================== #

    @app.route("/api/plans", methods=["POST"])
    def create_plan():
        try:
            data = request.get_json() or {}
            plan_id = str(data.get("plan_id", "")).strip()
            if not plan_id:
                return jsonify({"success": False, "error": "plan_id is required"}), 400
            service = state.service_factory.create_new_plan(
                plan_id,
                game_id=str(data.get("game_id", "")),
                schedule=ScheduleConfig.from_dict(data.get("schedule")),
                starting_lineup=data.get("starting_lineup"),
                max_players_on_field=int(data.get("max_players_on_field", DEFAULT_FIELD_SIZE)),
            )
            state.plan_services[plan_id] = service
            return jsonify({"success": True, "plan": service.state()}), 201
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>", methods=["GET"])
    def get_plan(plan_id: str):
        try:
            return jsonify({"success": True, "plan": state.plan_service(plan_id).state()})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>", methods=["DELETE"])
    def delete_plan(plan_id: str):
        try:
            state.forget(plan_id)
            state.service_factory.store.delete_plan(plan_id)
            return jsonify({"success": True, "message": f"Plan {plan_id} deleted"})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/lineup/<int:ordinal>", methods=["GET"])
    def get_lineup(plan_id: str, ordinal: int):
        try:
            service = state.plan_service(plan_id)
            return jsonify({
                "success": True,
                "ordinal": ordinal,
                "lineup": service.lineup_at(ordinal).as_dict(),
                "substitutions": [s.to_dict() for s in service.substitutions_at(ordinal)],
            })
        except Exception as e:
            return _error_response(e)

    # ==================== Lineup edits ==================== #

    @app.route("/api/plans/<plan_id>/starting-lineup", methods=["PUT"])
    def set_starting_lineup(plan_id: str):
        try:
            data = request.get_json() or {}
            result = state.plan_service(plan_id).set_starting_lineup(
                data.get("lineup"), strict=bool(data.get("strict", False))
            )
            return jsonify({"success": True, **_rebase_data(result)})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/rotations/<int:ordinal>/lineup", methods=["PUT"])
    def set_rotation_lineup(plan_id: str, ordinal: int):
        try:
            data = request.get_json() or {}
            result = state.plan_service(plan_id).set_rotation_lineup(
                ordinal, data.get("lineup"), strict=bool(data.get("strict", False))
            )
            return jsonify({"success": True, **_rebase_data(result)})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/rotations/<int:ordinal>/substitutions", methods=["PUT"])
    def set_rotation_substitutions(plan_id: str, ordinal: int):
        try:
            data = request.get_json() or {}
            substitutions = [Substitution.from_dict(s) for s in data.get("substitutions", [])]
            result = state.plan_service(plan_id).set_rotation_substitutions(ordinal, substitutions)
            return jsonify({"success": True, **_rebase_data(result)})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/swap", methods=["POST"])
    def swap_player(plan_id: str):
        try:
            data = request.get_json() or {}
            result = state.plan_service(plan_id).swap_player(
                int(data["ordinal"]), str(data["position_id"]), str(data["player_id"])
            )
            return jsonify({"success": True, **_rebase_data(result)})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/clear", methods=["POST"])
    def clear_position(plan_id: str):
        try:
            data = request.get_json() or {}
            service = state.plan_service(plan_id)
            result = service.clear_position(int(data["ordinal"]), str(data["position_id"]))
            response = {"success": True, "plan": service.state()}
            if result is not None:
                response.update(_rebase_data(result))
            return jsonify(response)
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/halftime-lineup", methods=["PUT"])
    def set_halftime_lineup(plan_id: str):
        try:
            data = request.get_json() or {}
            service = state.plan_service(plan_id)
            service.set_halftime_lineup(data.get("lineup"), strict=bool(data.get("strict", False)))
            return jsonify({"success": True, "halftime_lineup": service.state()["halftime_lineup"]})
        except Exception as e:
            return _error_response(e)

    # ==================== Generation & schedule ==================== #

    @app.route("/api/plans/<plan_id>/generate", methods=["POST"])
    def generate_rotations(plan_id: str):
        try:
            data = request.get_json(silent=True) or {}
            max_subs = data.get("max_substitutions")
            result = state.plan_service(plan_id).regenerate_rotations(
                max_substitutions=int(max_subs) if max_subs is not None else None
            )
            return jsonify({
                "success": True,
                "rotations": [
                    {
                        "ordinal": r.ordinal,
                        "game_minute": r.game_minute,
                        "substitutions": [s.to_dict() for s in r.substitutions],
                    }
                    for r in result.rotations
                ],
                "projected_minutes": result.projected_minutes,
                "spread_minutes": result.minutes_spread(),
                "warnings": result.warnings,
            })
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/schedule", methods=["PUT"])
    def change_schedule(plan_id: str):
        try:
            data = request.get_json() or {}
            sync = state.plan_service(plan_id).change_schedule(
                rotation_interval_minutes=data.get("rotation_interval_minutes"),
                half_length_minutes=data.get("half_length_minutes"),
            )
            return jsonify({
                "success": True,
                "created": sync.created,
                "pruned": sync.pruned,
                "retimed": sync.retimed,
                "total_rotations": len(sync.points),
            })
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/copy", methods=["POST"])
    def copy_plan(plan_id: str):
        try:
            data = request.get_json() or {}
            copied = state.plan_service(plan_id).copy_plan_to(
                str(data["target_plan_id"]), str(data.get("target_game_id", ""))
            )
            if copied is None:
                return jsonify({"success": False, "error": "Nothing to copy"}), 404
            return jsonify({"success": True, "plan_id": copied.plan_id, "game_id": copied.game_id}), 201
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/availability", methods=["POST"])
    def update_availability(plan_id: str):
        try:
            data = request.get_json() or {}
            elapsed = data.get("elapsed_minutes")
            change = state.plan_service(plan_id).update_availability(
                str(data["player_id"]),
                data["status"],
                elapsed_minutes=int(elapsed) if elapsed is not None else None,
                regenerate=bool(data.get("regenerate", False)),
            )
            response = {
                "success": True,
                "player": change.player.to_dict(),
                "affected_rotations": change.affected_ordinals,
            }
            if change.regenerated is not None:
                response["warnings"] = change.regenerated.warnings
            return jsonify(response)
        except Exception as e:
            return _error_response(e)

    # ==================== Validation & reports ==================== #

    @app.route("/api/plans/<plan_id>/validate", methods=["GET"])
    def validate_plan(plan_id: str):
        try:
            service = state.plan_service(plan_id)
            roster = service.players_for_game() if service.roster is not None else None
            result = validate_rotation_plan(service.plan, roster or None)
            return jsonify({"success": True, **result.to_dict()})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/report", methods=["GET"])
    def get_report(plan_id: str):
        try:
            analytics = state.service_factory.create_analytics_service(state.plan_service(plan_id))
            return jsonify({"success": True, "report": asdict(analytics.generate_plan_report())})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/report.csv", methods=["GET"])
    def export_report_csv(plan_id: str):
        try:
            analytics = state.service_factory.create_analytics_service(state.plan_service(plan_id))
            csv_content = analytics.generate_report_csv()
            return Response(
                csv_content,
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename=rotation_report_{plan_id}.csv"},
            )
        except Exception as e:
            return _error_response(e)

    # ==================== Synchronisation ==================== #

    @app.route("/api/plans/<plan_id>/external", methods=["POST"])
    def receive_external_update(plan_id: str):
        """Change notification pushed by the plan backend."""
        try:
            data = request.get_json() or {}
            applied = state.plan_service(plan_id).receive_external_update(data["category"], data.get("payload"))
            return jsonify({"success": True, "applied": applied})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/plans/<plan_id>/sync", methods=["GET"])
    def get_sync_state(plan_id: str):
        try:
            snapshot = state.plan_service(plan_id).reconciler.snapshot()
            return jsonify({
                "success": True,
                "categories": {
                    name: {"phase": snap.phase.value, "pending": snap.pending, "buffered": snap.has_buffered}
                    for name, snap in snapshot.items()
                },
            })
        except Exception as e:
            return _error_response(e)

    return app


def run_web_app(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                app_state: Optional[WebAppState] = None) -> None:
    """
    Run the web application.

    Args:
        host: Host address to bind to (default: localhost only)
        port: Port number to listen on
        app_state: State holder with the configured service factory
    """
    app = create_app(app_state)
    logger.info("Starting %s on http://%s:%s", APP_TITLE, host, port)
    # Plan services are not thread-safe; serve one request at a time
    app.run(host=host, port=port, debug=False, threaded=False)

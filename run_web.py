#!/usr/bin/env python3
"""
Main entry point for the Rotation Planner web application.

This script launches the Flask-based web server. Settings come from
environment variables:

    ROTATION_PLANNER_HOST       Address to bind (default 127.0.0.1)
    ROTATION_PLANNER_PORT       Port to listen on (default 7122)
    ROTATION_PLANNER_DATA       JSON file holding plans (default game_plans.json)
    ROTATION_PLANNER_STORE_URL  Remote plan store; overrides the data file
    ROTATION_PLANNER_LOG_LEVEL  Log level (default INFO)
    ROTATION_PLANNER_LOG_JSON   Set to 1 for JSON log lines
"""
import os

from rotation_planner.services import ServiceFactory
from rotation_planner.ui.web_app import WebAppState, run_web_app
from rotation_planner.utils import DEFAULT_DATA_FILE, DEFAULT_HOST, DEFAULT_PORT, setup_logging

if __name__ == "__main__":
    setup_logging(
        level=os.environ.get("ROTATION_PLANNER_LOG_LEVEL", "INFO"),
        json_format=os.environ.get("ROTATION_PLANNER_LOG_JSON") == "1",
    )
    factory = ServiceFactory.from_config(
        data_file=os.environ.get("ROTATION_PLANNER_DATA", DEFAULT_DATA_FILE),
        store_url=os.environ.get("ROTATION_PLANNER_STORE_URL"),
    )
    run_web_app(
        host=os.environ.get("ROTATION_PLANNER_HOST", DEFAULT_HOST),
        port=int(os.environ.get("ROTATION_PLANNER_PORT", DEFAULT_PORT)),
        app_state=WebAppState(factory),
    )

"""
UI package for the Rotation Planner.

This package contains the Flask web server exposing the planner's JSON API.
"""
from .web_app import create_app, run_web_app, WebAppState

__all__ = ["create_app", "run_web_app", "WebAppState"]

"""
Request Dependencies
Components are built once by create_app() and live on app.state.
"""

from fastapi import Request

from alerts import AlertEngine
from core import ResultBuffer
from services import EvaluationScheduler


def get_alert_engine(request: Request) -> AlertEngine:
    return request.app.state.alert_engine


def get_result_buffer(request: Request) -> ResultBuffer:
    return request.app.state.result_buffer


def get_scheduler(request: Request) -> EvaluationScheduler:
    return request.app.state.scheduler

from fastapi import Request

from app.engine.orchestrator import PaymentOrchestrator


def get_orchestrator(request: Request) -> PaymentOrchestrator:
    return request.app.state.orchestrator

# biboop/routers/pin.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ..services.pins import PinError, PinService

router = APIRouter(prefix="/pin", tags=["pin"])


def get_pin_service(request: Request) -> PinService:
    return request.app.state.pin_service


def _error(e: PinError) -> PlainTextResponse:
    return PlainTextResponse(str(e), status_code=e.status_code)


@router.post("/{namespace}")
def get_pin(namespace: str, service: PinService = Depends(get_pin_service)):
    try:
        res = service.issue(namespace)
    except PinError as e:
        return _error(e)
    return JSONResponse(res.model_dump())


@router.post("/{namespace}/{pin}")
def poll_pin(namespace: str, pin: str, service: PinService = Depends(get_pin_service)):
    try:
        res = service.poll(namespace, pin)
    except PinError as e:
        return _error(e)
    return JSONResponse(res.model_dump())


@router.put("/{namespace}/{pin}")
def respond_to_pin(
    namespace: str,
    pin: str,
    payload: Dict[str, Any] = Body(...),
    service: PinService = Depends(get_pin_service),
):
    try:
        service.submit(namespace, pin, payload)
    except PinError as e:
        return _error(e)
    return PlainTextResponse("Thanks!", status_code=202)

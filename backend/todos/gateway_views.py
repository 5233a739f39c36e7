"""
View-forwarding endpoints for the To-do Tracker.

These endpoints serve the front-end pages. They do not touch the task
store; every request is forwarded to the resource API configured in
TODO_API_BASE_URI and upstream failures are passed back to the caller.
"""

import logging

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.request import Request
from rest_framework.response import Response

from .gateway import (
    TodoGatewayClient,
    TodoGatewayError,
    TodoGatewayTimeout,
    compose_home_view,
    compose_item_view,
)
from .serializers import TodoSerializer
from .service import ErrorCode

logger = logging.getLogger(__name__)


def get_gateway_client() -> TodoGatewayClient:
    return TodoGatewayClient(settings.TODO_API_BASE_URI, timeout=settings.TODO_API_TIMEOUT)


def _upstream_error_response(error: TodoGatewayError) -> Response:
    logger.warning("Todo API call failed: %s", error.message)
    if isinstance(error, TodoGatewayTimeout):
        code, http_status = ErrorCode.ERR_UPSTREAM_UNAVAILABLE, status.HTTP_504_GATEWAY_TIMEOUT
    elif error.status_code is None:
        code, http_status = ErrorCode.ERR_UPSTREAM_UNAVAILABLE, status.HTTP_502_BAD_GATEWAY
    else:
        code, http_status = ErrorCode.ERR_UPSTREAM, error.status_code

    body = {
        'success': False,
        'error_code': code.value,
        'message': error.message
    }
    if error.response is not None:
        body['upstream'] = error.response
    return Response(body, status=http_status)


@extend_schema(
    summary="Landing page data",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Views']
)
@api_view(['GET'])
def home_view(request: Request) -> Response:
    """
    Return every task for the landing page.

    GET /view/
    """
    try:
        with get_gateway_client() as client:
            return Response(compose_home_view(client))
    except TodoGatewayError as e:
        return _upstream_error_response(e)


@extend_schema(
    summary="Single task page data",
    description="Combines the task (or an empty placeholder for id 0) with the status list.",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Views']
)
@api_view(['GET'])
def single_item_view(request: Request, action: str, todo_id: int) -> Response:
    """
    Return the task, the requested action (view/edit) and the status list.

    GET /view/singleItemView/{action}/{todoId}
    """
    try:
        with get_gateway_client() as client:
            return Response(compose_item_view(client, action, todo_id))
    except TodoGatewayError as e:
        return _upstream_error_response(e)


@extend_schema(request=TodoSerializer, responses={204: None}, tags=['Views'])
@api_view(['POST'])
def send_to_create(request: Request) -> Response:
    """Forward a new task to POST /create."""
    logger.debug("Forwarding create: %s", request.data)
    try:
        with get_gateway_client() as client:
            client.create(request.data)
    except TodoGatewayError as e:
        return _upstream_error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(request=TodoSerializer, responses={204: None}, tags=['Views'])
@api_view(['PUT'])
def send_to_update(request: Request) -> Response:
    """Forward a changed task to PUT /update."""
    logger.debug("Forwarding update: %s", request.data)
    try:
        with get_gateway_client() as client:
            client.update(request.data)
    except TodoGatewayError as e:
        return _upstream_error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(responses={204: None}, tags=['Views'])
@api_view(['DELETE'])
def send_to_delete(request: Request, todo_id: int) -> Response:
    """Forward a delete to DELETE /deleteById/{id}."""
    try:
        with get_gateway_client() as client:
            client.delete_by_id(todo_id)
    except TodoGatewayError as e:
        return _upstream_error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)

"""
API Views for the To-do Tracker.

This module exposes the TodoService over HTTP. Views only extract
parameters, call the service and shape the response; every lookup and
validation rule lives in the service.
"""

import logging

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import serializers, status
from rest_framework.decorators import api_view
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import TodoSerializer
from .service import ErrorCode, TodoNotFound, TodoService, TodoServiceError

logger = logging.getLogger(__name__)

todo_service = TodoService()


TODO_EXAMPLE = OpenApiExample(
    'New task',
    value={
        'id': 0,
        'title': 'Buy milk',
        'description': 'Semi-skimmed, two litres',
        'dueDate': '2024-01-01',
        'status': 'pending',
        'comments': [{'author': 'sam', 'text': 'From the corner shop'}]
    },
    request_only=True
)


def _error_response(error: TodoServiceError) -> Response:
    http_status = (
        status.HTTP_404_NOT_FOUND if isinstance(error, TodoNotFound)
        else status.HTTP_400_BAD_REQUEST
    )
    return Response(error.to_dict(), status=http_status)


def _invalid_body_response(serializer: TodoSerializer) -> Response:
    return Response(
        {
            'success': False,
            'error_code': ErrorCode.ERR_VALIDATION.value,
            'message': 'Invalid task data. Please check the format.',
            'errors': serializer.errors
        },
        status=status.HTTP_400_BAD_REQUEST
    )


def _upsert(request: Request, success_status: int) -> Response:
    serializer = TodoSerializer(data=request.data)
    if not serializer.is_valid():
        logger.debug("Rejected task body: %s", serializer.errors)
        return _invalid_body_response(serializer)

    try:
        todo = todo_service.create_or_update(serializer.validated_data)
    except TodoServiceError as e:
        return _error_response(e)

    return Response(TodoSerializer(todo).data, status=success_status)


@extend_schema(
    summary="API information",
    responses={200: OpenApiTypes.OBJECT},
    tags=['Info']
)
@api_view(['GET'])
def api_info(request: Request) -> Response:
    """
    Return API information and the available endpoints.

    GET /
    """
    return Response({
        'name': settings.SPECTACULAR_SETTINGS['TITLE'],
        'version': settings.SPECTACULAR_SETTINGS['VERSION'],
        'endpoints': {
            'findAll': 'GET /findAll',
            'find': 'GET /find/{id}',
            'deleteById': 'DELETE /deleteById/{id}',
            'update': 'PUT /update',
            'create': 'POST /create',
            'getStatus': 'GET /getStatus',
            'docs': 'GET /api/docs/',
        },
        'statuses': todo_service.get_status_vocabulary()
    })


@extend_schema(
    summary="List all tasks",
    responses={200: TodoSerializer(many=True)},
    tags=['Todos']
)
@api_view(['GET'])
def find_all(request: Request) -> Response:
    """
    Return every task ordered by id.

    GET /findAll
    """
    todos = todo_service.find_all()
    logger.debug("findAll returned %d todos", len(todos))
    return Response(TodoSerializer(todos, many=True).data)


@extend_schema(
    summary="Get a task by id",
    responses={200: TodoSerializer, 404: OpenApiTypes.OBJECT},
    tags=['Todos']
)
@api_view(['GET'])
def find_by_id(request: Request, todo_id: int) -> Response:
    """
    Return a single task.

    GET /find/{id}
    """
    try:
        todo = todo_service.find_by_id(todo_id)
    except TodoServiceError as e:
        return _error_response(e)
    return Response(TodoSerializer(todo).data)


@extend_schema(
    summary="Delete a task by id",
    description="Returns true when a task was deleted and false when no task had that id.",
    responses={200: OpenApiTypes.BOOL},
    tags=['Todos']
)
@api_view(['DELETE'])
def delete_by_id(request: Request, todo_id: int) -> Response:
    """
    Delete a task and its comments.

    DELETE /deleteById/{id}
    """
    return Response(todo_service.delete_by_id(todo_id))


@extend_schema(
    summary="Update a task",
    description="Replaces every mutable field of the task, including its comments.",
    request=TodoSerializer,
    responses={200: TodoSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    tags=['Todos']
)
@api_view(['PUT'])
def update_todo(request: Request) -> Response:
    """
    Update an existing task (an id of 0 creates one instead).

    PUT /update
    """
    return _upsert(request, status.HTTP_200_OK)


@extend_schema(
    summary="Create a task",
    request=TodoSerializer,
    responses={201: TodoSerializer, 400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    examples=[TODO_EXAMPLE],
    tags=['Todos']
)
@api_view(['POST'])
def create_todo(request: Request) -> Response:
    """
    Create a task; the response carries the assigned id.

    POST /create
    """
    return _upsert(request, status.HTTP_201_CREATED)


@extend_schema(
    summary="List allowed statuses",
    responses={200: serializers.ListField(child=serializers.CharField())},
    tags=['Todos']
)
@api_view(['GET'])
def get_status(request: Request) -> Response:
    """
    Return the allowed status values in workflow order.

    GET /getStatus
    """
    return Response(todo_service.get_status_vocabulary())

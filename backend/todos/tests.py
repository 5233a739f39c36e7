"""
Unit Tests for the To-do Tracker.

This module covers the todo service (upsert, lookup, delete, status
vocabulary), the HTTP resource API, and the view-forwarding gateway.
"""

from django.db import transaction
from django.test import TestCase
from drf_spectacular.generators import SchemaGenerator
from rest_framework.test import APITestCase
from rest_framework import status
from datetime import date, datetime, timezone as dt_timezone
from contextlib import contextmanager
from types import SimpleNamespace
from unittest import mock
import importlib
import json
import os

import httpx

from todo_tracker import settings as project_settings

from .gateway import (
    TodoGatewayClient,
    TodoGatewayError,
    TodoGatewayTimeout,
    compose_home_view,
    compose_item_view,
    empty_todo_payload,
)
from .models import Todo, TodoComment, TodoStatus
from .serializers import TodoSerializer
from .service import (
    Create,
    ErrorCode,
    TodoNotFound,
    TodoService,
    TodoValidationError,
    Update,
    classify_upsert,
)


def make_task(**overrides):
    task = {
        'id': 0,
        'title': 'Buy milk',
        'description': '',
        'due_date': date(2024, 1, 1),
        'status': TodoStatus.PENDING,
    }
    task.update(overrides)
    return task


class ClassifyUpsertTests(TestCase):
    """Tests for the create/update decision."""

    def test_zero_id_is_create(self):
        self.assertEqual(classify_upsert(0), Create())

    def test_missing_id_is_create(self):
        self.assertEqual(classify_upsert(None), Create())

    def test_nonzero_id_is_update(self):
        self.assertEqual(classify_upsert(7), Update(todo_id=7))


class StatusVocabularyTests(TestCase):
    """Tests for the status vocabulary."""

    def setUp(self):
        self.service = TodoService()

    def test_vocabulary_not_empty(self):
        self.assertGreater(len(self.service.get_status_vocabulary()), 0)

    def test_vocabulary_in_workflow_order(self):
        """Statuses are listed in workflow order, not alphabetically."""
        self.assertEqual(
            self.service.get_status_vocabulary(),
            ['pending', 'in-progress', 'on-hold', 'done']
        )

    def test_vocabulary_stable_across_calls(self):
        self.assertEqual(
            self.service.get_status_vocabulary(),
            self.service.get_status_vocabulary()
        )

    def test_every_status_accepted(self):
        """Every listed status can be stored."""
        for value in self.service.get_status_vocabulary():
            todo = self.service.create_or_update(make_task(status=value))
            self.assertEqual(todo.status, value)


class CreateTests(TestCase):
    """Tests for creating tasks through create_or_update."""

    def setUp(self):
        self.service = TodoService()

    def test_create_assigns_new_id(self):
        """Each created task gets a fresh, previously unused id."""
        first = self.service.create_or_update(make_task())
        second = self.service.create_or_update(make_task(title='Walk dog'))

        self.assertNotEqual(first.pk, 0)
        self.assertNotEqual(first.pk, second.pk)

    def test_created_task_found_by_id(self):
        created = self.service.create_or_update(make_task(description='Two litres'))
        found = self.service.find_by_id(created.pk)

        self.assertEqual(TodoSerializer(found).data, TodoSerializer(created).data)

    def test_missing_id_creates(self):
        task = make_task()
        del task['id']
        todo = self.service.create_or_update(task)
        self.assertTrue(Todo.objects.filter(pk=todo.pk).exists())

    def test_empty_title_rejected(self):
        with self.assertRaises(TodoValidationError) as ctx:
            self.service.create_or_update(make_task(title='   '))
        self.assertEqual(ctx.exception.field, 'title')
        self.assertEqual(Todo.objects.count(), 0)

    def test_missing_due_date_rejected(self):
        with self.assertRaises(TodoValidationError) as ctx:
            self.service.create_or_update(make_task(due_date=None))
        self.assertEqual(ctx.exception.field, 'due_date')

    def test_unknown_status_rejected(self):
        with self.assertRaises(TodoValidationError) as ctx:
            self.service.create_or_update(make_task(status='archived'))
        self.assertEqual(ctx.exception.field, 'status')
        self.assertEqual(ctx.exception.to_dict()['error_code'], ErrorCode.ERR_VALIDATION.value)

    def test_comments_stored_in_order(self):
        todo = self.service.create_or_update(make_task(comments=[
            {'author': 'ann', 'text': 'first',
             'timestamp': datetime(2024, 1, 1, 9, 0, tzinfo=dt_timezone.utc)},
            {'author': 'bob', 'text': 'second',
             'timestamp': datetime(2024, 1, 1, 10, 0, tzinfo=dt_timezone.utc)},
        ]))

        self.assertEqual([c.text for c in todo.comments.all()], ['first', 'second'])

    def test_comment_timestamp_defaults_to_now(self):
        todo = self.service.create_or_update(make_task(comments=[{'text': 'note'}]))
        self.assertIsNotNone(todo.comments.get().timestamp)


class UpdateTests(TestCase):
    """Tests for updating tasks through create_or_update."""

    def setUp(self):
        self.service = TodoService()
        self.todo = self.service.create_or_update(make_task(
            comments=[{'author': 'ann', 'text': 'one'}, {'author': 'ann', 'text': 'two'}]
        ))

    def test_update_replaces_fields(self):
        self.service.create_or_update(make_task(
            id=self.todo.pk,
            title='Buy oat milk',
            status=TodoStatus.IN_PROGRESS
        ))
        found = self.service.find_by_id(self.todo.pk)

        self.assertEqual(found.title, 'Buy oat milk')
        self.assertEqual(found.status, TodoStatus.IN_PROGRESS)
        self.assertEqual(Todo.objects.count(), 1)

    def test_update_replaces_comments(self):
        self.service.create_or_update(make_task(
            id=self.todo.pk,
            comments=[{'author': 'bob', 'text': 'only'}]
        ))
        found = self.service.find_by_id(self.todo.pk)

        self.assertEqual([c.text for c in found.comments.all()], ['only'])
        self.assertEqual(TodoComment.objects.count(), 1)

    def test_update_missing_id_not_found(self):
        with self.assertRaises(TodoNotFound):
            self.service.create_or_update(make_task(id=self.todo.pk + 100))
        self.assertEqual(Todo.objects.count(), 1)

    def test_invalid_update_leaves_record_unchanged(self):
        with self.assertRaises(TodoValidationError):
            self.service.create_or_update(make_task(id=self.todo.pk, status='bogus'))
        self.assertEqual(self.service.find_by_id(self.todo.pk).title, 'Buy milk')

    def test_done_keeps_completion_date(self):
        todo = self.service.create_or_update(make_task(
            id=self.todo.pk,
            status=TodoStatus.DONE,
            completion_date=date(2024, 1, 2)
        ))
        self.assertEqual(todo.completion_date, date(2024, 1, 2))

    def test_done_without_completion_date_stamps_today(self):
        todo = self.service.create_or_update(make_task(id=self.todo.pk, status=TodoStatus.DONE))
        self.assertEqual(todo.completion_date, date.today())

    def test_reopened_task_clears_completion_date(self):
        """Moving back out of done is allowed and drops the completion date."""
        self.service.create_or_update(make_task(
            id=self.todo.pk, status=TodoStatus.DONE, completion_date=date(2024, 1, 2)
        ))
        todo = self.service.create_or_update(make_task(id=self.todo.pk, status=TodoStatus.PENDING))

        self.assertEqual(todo.status, TodoStatus.PENDING)
        self.assertIsNone(todo.completion_date)


class FindAndDeleteTests(TestCase):
    """Tests for listing, lookup and delete."""

    def setUp(self):
        self.service = TodoService()

    def test_find_all_empty(self):
        self.assertEqual(self.service.find_all(), [])

    def test_find_by_id_missing(self):
        with self.assertRaises(TodoNotFound) as ctx:
            self.service.find_by_id(42)
        self.assertEqual(ctx.exception.todo_id, 42)

    def test_find_all_after_delete(self):
        """Creating A, B, C and deleting B leaves exactly A, C in order."""
        a = self.service.create_or_update(make_task(title='A'))
        b = self.service.create_or_update(make_task(title='B'))
        c = self.service.create_or_update(make_task(title='C'))

        self.assertTrue(self.service.delete_by_id(b.pk))
        self.assertEqual([t.pk for t in self.service.find_all()], [a.pk, c.pk])

    def test_delete_existing(self):
        todo = self.service.create_or_update(make_task(comments=[{'text': 'gone soon'}]))

        self.assertTrue(self.service.delete_by_id(todo.pk))
        with self.assertRaises(TodoNotFound):
            self.service.find_by_id(todo.pk)
        self.assertEqual(TodoComment.objects.count(), 0)

    def test_delete_missing_returns_false(self):
        todo = self.service.create_or_update(make_task())

        self.assertFalse(self.service.delete_by_id(todo.pk + 1))
        self.assertEqual(Todo.objects.count(), 1)

    def test_upsert_result_survives_delete_after_commit(self):
        """A delete landing right after the upsert commits does not hide the stored task."""
        real_atomic = transaction.atomic

        @contextmanager
        def atomic_then_delete(*args, **kwargs):
            with real_atomic(*args, **kwargs):
                yield
            Todo.objects.all().delete()

        with mock.patch('todos.service.transaction', SimpleNamespace(atomic=atomic_then_delete)):
            todo = self.service.create_or_update(make_task(comments=[{'text': 'kept'}]))

        self.assertEqual(todo.title, 'Buy milk')
        self.assertEqual([c.text for c in todo.comments.all()], ['kept'])
        self.assertEqual(Todo.objects.count(), 0)


class APIEndpointTests(APITestCase):
    """Tests for the resource API endpoints."""

    def post_json(self, path, data):
        return self.client.post(path, data=json.dumps(data), content_type='application/json')

    def put_json(self, path, data):
        return self.client.put(path, data=json.dumps(data), content_type='application/json')

    def test_buy_milk_lifecycle(self):
        """Create, complete, delete, then the task is gone."""
        response = self.post_json('/create', {
            'id': 0,
            'title': 'Buy milk',
            'dueDate': '2024-01-01',
            'status': 'pending'
        })

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        todo_id = response.data['id']
        self.assertNotEqual(todo_id, 0)
        self.assertEqual(response.data['title'], 'Buy milk')
        self.assertEqual(response.data['dueDate'], '2024-01-01')
        self.assertEqual(response.data['status'], 'pending')
        self.assertIsNone(response.data['completionDate'])

        response = self.put_json('/update', {
            'id': todo_id,
            'title': 'Buy milk',
            'dueDate': '2024-01-01',
            'status': 'done',
            'completionDate': '2024-01-02'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/find/{todo_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'done')
        self.assertEqual(response.data['completionDate'], '2024-01-02')

        response = self.client.delete(f'/deleteById/{todo_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIs(response.data, True)

        response = self.client.get(f'/find/{todo_id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error_code'], ErrorCode.ERR_NOT_FOUND.value)

    def test_create_with_comments(self):
        response = self.post_json('/create', {
            'title': 'Plan trip',
            'description': 'Summer',
            'dueDate': '2024-06-01',
            'status': 'in-progress',
            'comments': [{'author': 'ann', 'text': 'Check trains', 'timestamp': '2024-05-01T10:00:00Z'}]
        })

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['comments']), 1)
        self.assertEqual(response.data['comments'][0]['author'], 'ann')
        self.assertEqual(response.data['comments'][0]['text'], 'Check trains')

    def test_create_invalid_status(self):
        response = self.post_json('/create', {
            'title': 'Buy milk',
            'dueDate': '2024-01-01',
            'status': 'archived'
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('status', response.data['errors'])

    def test_create_empty_title(self):
        response = self.post_json('/create', {
            'title': '',
            'dueDate': '2024-01-01',
            'status': 'pending'
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_missing_due_date(self):
        response = self.post_json('/create', {'title': 'Buy milk', 'status': 'pending'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('dueDate', response.data['errors'])

    def test_update_missing_id(self):
        response = self.put_json('/update', {
            'id': 999,
            'title': 'Ghost',
            'dueDate': '2024-01-01',
            'status': 'pending'
        })
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_missing_returns_false(self):
        response = self.client.delete('/deleteById/999')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIs(response.data, False)

    def test_find_all(self):
        for title in ('A', 'B'):
            self.post_json('/create', {'title': title, 'dueDate': '2024-01-01', 'status': 'pending'})

        response = self.client.get('/findAll')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['title'] for t in response.data], ['A', 'B'])

    def test_get_status(self):
        response = self.client.get('/getStatus')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, ['pending', 'in-progress', 'on-hold', 'done'])

    def test_wrong_method_rejected(self):
        response = self.client.get('/create')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_api_info_endpoint(self):
        response = self.client.get('/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('endpoints', response.data)
        self.assertIn('statuses', response.data)

    def test_cors_allowed_origin(self):
        """Front-end origins may call the API cross-origin."""
        response = self.client.get('/getStatus', HTTP_ORIGIN='http://localhost:3000')
        self.assertEqual(response['Access-Control-Allow-Origin'], 'http://localhost:3000')

    def test_cors_unknown_origin(self):
        response = self.client.get('/getStatus', HTTP_ORIGIN='http://evil.example')
        self.assertFalse(response.has_header('Access-Control-Allow-Origin'))


# ==================== Gateway ====================

STORED_TODO = {
    'id': 5,
    'title': 'Buy milk',
    'description': '',
    'dueDate': '2024-01-01',
    'completionDate': None,
    'status': 'pending',
    'comments': []
}

STATUSES = ['pending', 'in-progress', 'on-hold', 'done']


def upstream_handler(request):
    """Fake resource API answering the gateway's calls."""
    path = request.url.path
    if request.method == 'GET' and path == '/findAll':
        return httpx.Response(200, json=[STORED_TODO])
    if request.method == 'GET' and path == '/find/5':
        return httpx.Response(200, json=STORED_TODO)
    if request.method == 'GET' and path.startswith('/find/'):
        return httpx.Response(404, json={'success': False, 'error_code': 'ERR_NOT_FOUND'})
    if request.method == 'GET' and path == '/getStatus':
        return httpx.Response(200, json=STATUSES)
    if request.method == 'POST' and path == '/create':
        body = json.loads(request.content)
        return httpx.Response(201, json={**body, 'id': 6})
    if request.method == 'PUT' and path == '/update':
        return httpx.Response(200, json=json.loads(request.content))
    if request.method == 'DELETE' and path.startswith('/deleteById/'):
        return httpx.Response(200, json=path.endswith('/5'))
    return httpx.Response(404)


def make_client(handler=upstream_handler):
    return TodoGatewayClient('http://upstream', transport=httpx.MockTransport(handler))


class GatewayClientTests(TestCase):
    """Tests for the HTTP gateway client and view composition."""

    def setUp(self):
        self.gateway = make_client()

    def tearDown(self):
        self.gateway.close()

    def test_contract_calls(self):
        self.assertEqual(self.gateway.find_all(), [STORED_TODO])
        self.assertEqual(self.gateway.find_by_id(5), STORED_TODO)
        self.assertEqual(self.gateway.get_status(), STATUSES)
        self.assertEqual(self.gateway.create({'title': 'x'})['id'], 6)
        self.assertTrue(self.gateway.delete_by_id(5))
        self.assertFalse(self.gateway.delete_by_id(9))

    def test_upstream_error_keeps_status(self):
        with self.assertRaises(TodoGatewayError) as ctx:
            self.gateway.find_by_id(9)

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.response['error_code'], 'ERR_NOT_FOUND')

    def test_timeout_raised(self):
        def handler(request):
            raise httpx.ReadTimeout('timed out', request=request)

        with make_client(handler) as client:
            with self.assertRaises(TodoGatewayTimeout):
                client.find_all()

    def test_unreachable_upstream(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        with make_client(handler) as client:
            with self.assertRaises(TodoGatewayError) as ctx:
                client.get_status()
        self.assertIsNone(ctx.exception.status_code)

    def test_non_json_success_body(self):
        """A 2xx answer that is not JSON is an upstream failure."""
        def handler(request):
            return httpx.Response(200, text='<html>oops</html>')

        with make_client(handler) as client:
            with self.assertRaises(TodoGatewayError) as ctx:
                client.find_all()
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(ctx.exception.response, '<html>oops</html>')

    def test_redirect_not_followed(self):
        def handler(request):
            return httpx.Response(302, headers={'Location': 'http://elsewhere/login'})

        with make_client(handler) as client:
            with self.assertRaises(TodoGatewayError) as ctx:
                client.get_status()
        self.assertIsNone(ctx.exception.status_code)

    def test_compose_home_view(self):
        self.assertEqual(compose_home_view(self.gateway), {'todoList': [STORED_TODO]})

    def test_compose_item_view_existing(self):
        payload = compose_item_view(self.gateway, 'edit', 5)

        self.assertEqual(payload['todoItem'], STORED_TODO)
        self.assertEqual(payload['action'], 'edit')
        self.assertEqual(payload['todoStatus'], STATUSES)

    def test_compose_item_view_new_task(self):
        """An id of 0 yields an empty placeholder without a lookup."""
        payload = compose_item_view(self.gateway, 'edit', 0)

        self.assertEqual(payload['todoItem']['id'], 0)
        self.assertEqual(payload['todoItem']['title'], '')
        self.assertEqual(payload['todoItem']['dueDate'], date.today().isoformat())

    def test_empty_payload_accepted_as_create(self):
        """The placeholder carries no persisted identifier."""
        self.assertEqual(classify_upsert(empty_todo_payload()['id']), Create())


@mock.patch('todos.gateway_views.get_gateway_client', side_effect=make_client)
class GatewayViewTests(APITestCase):
    """Tests for the view-forwarding endpoints."""

    def test_home_view(self, _):
        response = self.client.get('/view/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['todoList'], [STORED_TODO])

    def test_single_item_view(self, _):
        response = self.client.get('/view/singleItemView/view/5')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['action'], 'view')
        self.assertEqual(response.data['todoItem']['id'], 5)
        self.assertEqual(response.data['todoStatus'], STATUSES)

    def test_single_item_view_missing_task(self, _):
        """Upstream 404 is passed back, not swallowed."""
        response = self.client.get('/view/singleItemView/view/9')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error_code'], ErrorCode.ERR_UPSTREAM.value)

    def test_forward_create(self, _):
        response = self.client.post(
            '/view/create',
            data=json.dumps({'id': 0, 'title': 'Buy milk', 'dueDate': '2024-01-01', 'status': 'pending'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_forward_update(self, _):
        response = self.client.put(
            '/view/update',
            data=json.dumps(STORED_TODO),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_forward_delete(self, _):
        response = self.client.delete('/view/deleteById/5')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_upstream_down(self, get_client):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        get_client.side_effect = lambda: make_client(handler)
        response = self.client.get('/view/')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error_code'], ErrorCode.ERR_UPSTREAM_UNAVAILABLE.value)

    def test_upstream_timeout(self, get_client):
        def handler(request):
            raise httpx.ReadTimeout('timed out', request=request)

        get_client.side_effect = lambda: make_client(handler)
        response = self.client.get('/view/singleItemView/edit/5')

        self.assertEqual(response.status_code, status.HTTP_504_GATEWAY_TIMEOUT)

    def test_upstream_non_json(self, get_client):
        def handler(request):
            return httpx.Response(200, text='<html>oops</html>')

        get_client.side_effect = lambda: make_client(handler)
        response = self.client.get('/view/')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error_code'], ErrorCode.ERR_UPSTREAM_UNAVAILABLE.value)

    def test_upstream_redirect(self, get_client):
        def handler(request):
            return httpx.Response(302, headers={'Location': 'http://elsewhere/login'})

        get_client.side_effect = lambda: make_client(handler)
        response = self.client.get('/view/singleItemView/view/5')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


class SchemaTests(TestCase):
    """Tests for the generated OpenAPI schema."""

    def test_status_list_documented_as_string_array(self):
        schema = SchemaGenerator().get_schema(request=None, public=True)
        response = schema['paths']['/getStatus']['get']['responses']['200']
        body = response['content']['application/json']['schema']

        self.assertEqual(body['type'], 'array')
        self.assertEqual(body['items']['type'], 'string')


class SettingsTests(TestCase):
    """Tests for environment-driven settings."""

    def tearDown(self):
        importlib.reload(project_settings)

    def test_debug_off_by_default(self):
        with mock.patch.dict(os.environ, {}, clear=True), mock.patch('dotenv.load_dotenv'):
            reloaded = importlib.reload(project_settings)
        self.assertFalse(reloaded.DEBUG)

    def test_debug_opt_in(self):
        with mock.patch.dict(os.environ, {'TODO_DEBUG': 'true'}, clear=True), \
                mock.patch('dotenv.load_dotenv'):
            reloaded = importlib.reload(project_settings)
        self.assertTrue(reloaded.DEBUG)

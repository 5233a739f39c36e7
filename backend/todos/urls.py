"""
URL configuration for the todos app.
"""

from django.urls import path

from . import gateway_views, views

urlpatterns = [
    path('', views.api_info, name='api-info'),
    path('findAll', views.find_all, name='find-all'),
    path('find/<int:todo_id>', views.find_by_id, name='find-by-id'),
    path('deleteById/<int:todo_id>', views.delete_by_id, name='delete-by-id'),
    path('update', views.update_todo, name='update-todo'),
    path('create', views.create_todo, name='create-todo'),
    path('getStatus', views.get_status, name='get-status'),
    # View-forwarding layer
    path('view/', gateway_views.home_view, name='view-home'),
    path(
        'view/singleItemView/<str:action>/<int:todo_id>',
        gateway_views.single_item_view,
        name='view-single-item'
    ),
    path('view/create', gateway_views.send_to_create, name='view-create'),
    path('view/update', gateway_views.send_to_update, name='view-update'),
    path('view/deleteById/<int:todo_id>', gateway_views.send_to_delete, name='view-delete-by-id'),
]

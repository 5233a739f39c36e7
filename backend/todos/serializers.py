"""
Serializers for the Todo model.

This module converts between the JSON task shape used on the wire
(camelCase dates, nested comments) and the field names the service and
models use.
"""

from rest_framework import serializers

from .models import TodoStatus


class TodoCommentSerializer(serializers.Serializer):
    """A comment on a task. The timestamp defaults to the time it is stored."""

    author = serializers.CharField(max_length=100, allow_blank=True, default='')
    text = serializers.CharField()
    timestamp = serializers.DateTimeField(required=False, allow_null=True)


class TodoSerializer(serializers.Serializer):
    """
    Serializer for a task, used for both request bodies and responses.

    An id of 0 (or no id at all) marks a task that has not been stored yet.
    """

    id = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        default=''
    )
    dueDate = serializers.DateField(source='due_date')
    completionDate = serializers.DateField(
        source='completion_date',
        required=False,
        allow_null=True
    )
    status = serializers.ChoiceField(choices=TodoStatus.choices)
    comments = TodoCommentSerializer(many=True, required=False)

    def validate_title(self, value):
        """Ensure title is not empty or just whitespace."""
        if not value or not value.strip():
            raise serializers.ValidationError("Title cannot be empty")
        return value.strip()

    def validate_description(self, value):
        return value or ''

"""
Todo models for the To-do Tracker.

This module defines the to-do task, its owned comments, and the closed
status vocabulary a task's status is drawn from.
"""

from django.db import models


class TodoStatus(models.TextChoices):
    """
    Allowed task statuses, declared in workflow order.

    The declaration order is the order the status list is presented in.
    """
    PENDING = 'pending', 'Pending'
    IN_PROGRESS = 'in-progress', 'In Progress'
    ON_HOLD = 'on-hold', 'On Hold'
    DONE = 'done', 'Done'


class Todo(models.Model):
    """
    A to-do task.

    Attributes:
        title: Short label for the task
        description: Free text details (may be empty)
        due_date: Calendar date the task is due
        completion_date: Date the task was done; only set for DONE tasks
        status: One of TodoStatus
    """

    title = models.CharField(max_length=255, help_text="Task title")
    description = models.TextField(blank=True, default='', help_text="Task details (optional)")
    due_date = models.DateField(help_text="Date the task is due")
    completion_date = models.DateField(
        null=True,
        blank=True,
        help_text="Date the task was completed (done tasks only)"
    )
    status = models.CharField(
        max_length=20,
        choices=TodoStatus.choices,
        default=TodoStatus.PENDING,
    )

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.title} ({self.status})"


class TodoComment(models.Model):
    """A comment attached to a task; deleted together with the task."""

    todo = models.ForeignKey(Todo, on_delete=models.CASCADE, related_name='comments')
    author = models.CharField(max_length=100, blank=True, default='')
    text = models.TextField()
    timestamp = models.DateTimeField()

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self):
        return f"{self.author or 'anonymous'}: {self.text[:40]}"

"""
Runtime-editable key/value settings.
"""
import json

from django.db import models


class Setting(models.Model):
    """
    A typed setting stored as text.

    `value` is decoded according to `type`; a value that fails to decode is
    returned as the raw string.
    """

    class Type(models.TextChoices):
        STRING = 'string', 'String'
        NUMBER = 'number', 'Number'
        BOOLEAN = 'boolean', 'Boolean'
        JSON = 'json', 'JSON'

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True, default='')
    type = models.CharField(max_length=10, choices=Type.choices, default=Type.STRING)
    category = models.CharField(max_length=50, default='general', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Setting'
        verbose_name_plural = 'Settings'
        ordering = ['category', 'key']

    def __str__(self):
        return f"{self.key} = {self.value}"

    @property
    def typed_value(self):
        try:
            if self.type == self.Type.JSON:
                return json.loads(self.value)
            if self.type == self.Type.NUMBER:
                try:
                    return int(self.value)
                except ValueError:
                    return float(self.value)
            if self.type == self.Type.BOOLEAN:
                return self.value == 'true'
        except ValueError:
            return self.value
        return self.value

"""
Members app models
A member is anyone carrying a kiosk barcode card
"""
from django.db import models


class Member(models.Model):
    """
    Roster entry identified at the kiosk by a unique barcode.
    Deleting a member removes their attendance history as well.
    """
    name = models.CharField(max_length=150)
    # Printed on the member card, must be unique
    barcode = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        return f"{self.name} ({self.barcode})"

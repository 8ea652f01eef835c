"""Pydantic schemas for the deferred billing API."""

from deferred_billing.schemas.selection import *
from deferred_billing.schemas.review import *

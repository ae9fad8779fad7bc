"""Plan descriptors and subscriber enrollments."""

from .models import PlanDescriptor, PlanEnrollment, PlanType

__all__ = ["PlanDescriptor", "PlanEnrollment", "PlanType"]

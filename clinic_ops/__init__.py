"""Clinic operations backend: patients, scheduling, billing and clinical records."""

__version__ = "0.1.0"

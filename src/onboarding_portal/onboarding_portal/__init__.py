"""Onboarding Portal package.

This package is organized by feature modules (users, sessions, onboarding,
lifecycle, roster, attendance, ...) with a thin Flask controller layer and
service/repository layers underneath.
"""

"""Worksite attendance backend.

Feature modules (users, sites, attendance, announcements) each carry a model,
a repository protocol with its MySQL implementation, a service and a thin
Flask controller. ``main.create_app`` wires them together.
"""

"""Datastore Manager: admin console backend for the Roblox Open Cloud Datastore API."""

__version__ = "0.1.0"

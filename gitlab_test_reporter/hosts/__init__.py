"""Adapters feeding test host events into the reporter."""

"""Attachment lifecycle service: reference counting, access sync and crops."""

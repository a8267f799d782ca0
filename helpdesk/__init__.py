"""Helpdesk ticketing backend."""

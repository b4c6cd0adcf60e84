"""Tutoring Center back office package.

Feature modules (groups, enrollment, lessons, payments, attendance, scheduler)
each carry a thin Flask controller over service/repository layers.
"""

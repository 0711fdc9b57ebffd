"""Shipyard Report package.

Feature modules (vessels, work orders, progress, BASTP, invoices, ...) each
carry a thin Flask controller over service and repository layers.
"""

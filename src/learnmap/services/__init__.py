"""Service layer — session state and algorithms returning ServiceResult.

Services may import from domain, config, infrastructure, and plugins.
They must never import from commands or output.
"""

"""Infrastructure layer — graph bookkeeping, layout, collaborators.

This layer depends on the domain layer and third-party libs (NetworkX, aiohttp).
It must never import from services, commands, or output.
The service layer bridges between domain models and infrastructure.
"""

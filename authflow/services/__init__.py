"""Service layer.

Subpackages
-----------
- :mod:`authflow.services.auth`: session lifecycle (register, login,
  refresh, logout) via :class:`~authflow.services.auth.service.AuthService`.
- :mod:`authflow.services.media`: local-file intake for uploaded media.
- :mod:`authflow.services._shared`: base service, error taxonomy and ports.

Nothing is re-exported here: repositories import the shared error types and
an eager import of the services would close an import cycle.
"""

"""Language Server Protocol binding for fluffls."""

from fluffls.lsp.server import create_server

__all__ = ["create_server"]

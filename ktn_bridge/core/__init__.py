# Lazy imports to avoid triggering the full dependency chain.
# This allows targeted imports like `from ktn_bridge.core.errors import ParseFailure`
# without loading the tree-sitter grammars.

__all__ = [
    # Engine
    "TransformEngine",
    "create_transformer",
    "TargetMode",
    "TransformRequest",
    "TransformResult",
    # Registry
    "MappingRegistry",
    "create_default_registry",
    # Diagnostics
    "DiagnosticRecorder",
    # Errors
    "BridgeError",
    "ParseFailure",
    "ErrorHandler",
    "get_error_handler",
]

_IMPORT_MAP = {
    "TransformEngine": ".transform",
    "create_transformer": ".transform",
    "TargetMode": ".models",
    "TransformRequest": ".models",
    "TransformResult": ".models",
    "MappingRegistry": ".mappings",
    "create_default_registry": ".mappings",
    "DiagnosticRecorder": ".diagnostics",
    "BridgeError": ".errors",
    "ParseFailure": ".errors",
    "ErrorHandler": ".errors",
    "get_error_handler": ".errors",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'ktn_bridge.core' has no attribute {name}")

"""
implgen - Go repository implementation generator

Reads repository contracts (Go interfaces named ``*Repository``) and keeps
their implementation packages in step: dependency-injection scaffolding for
new contracts, traced stubs for new methods and one fx registry per run.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy loading of the public API so the CLI starts without the parser."""
    if name in {"GenerationRunner", "GenerationReport", "RunContext", "run_generation"}:
        from .runner import GenerationReport, GenerationRunner, RunContext, run_generation

        return {
            "GenerationRunner": GenerationRunner,
            "GenerationReport": GenerationReport,
            "RunContext": RunContext,
            "run_generation": run_generation,
        }[name]

    if name in {"ImplgenConfig", "load_config"}:
        from .config import ImplgenConfig, load_config

        return {"ImplgenConfig": ImplgenConfig, "load_config": load_config}[name]

    if name in {"Contract", "Method", "Parameter", "Import", "ImplementationRecord"}:
        from . import models

        return getattr(models, name)

    if name == "ImplgenError":
        from .errors import ImplgenError

        return ImplgenError

    raise AttributeError(f"module 'implgen' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Pipeline
    "GenerationRunner",
    "GenerationReport",
    "RunContext",
    "run_generation",
    # Configuration
    "ImplgenConfig",
    "load_config",
    # Data model
    "Contract",
    "Method",
    "Parameter",
    "Import",
    "ImplementationRecord",
    "ImplgenError",
]

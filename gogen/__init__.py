"""gogen -- scaffolds Go API services from a template tree.

Quick usage::

    from gogen import Config, GeneratorOptions, Scaffolder

    config = Config.resolve().with_overrides(entity="book")
    options = GeneratorOptions.from_config("library", config)
    result = await Scaffolder(options, config).generate()
"""

from gogen.config import Config
from gogen.errors import (
    DuplicateProjectError,
    ScaffoldError,
    StorageError,
    TargetExistsError,
    TemplateError,
    ValidationError,
)
from gogen.ports import PortTriple, allocate
from gogen.registry import ProjectRecord, RegistryStore
from gogen.scaffolder import GenerationResult, GenerationState, GeneratorOptions, Scaffolder

__all__ = [
    "Config",
    "DuplicateProjectError",
    "GenerationResult",
    "GenerationState",
    "GeneratorOptions",
    "PortTriple",
    "ProjectRecord",
    "RegistryStore",
    "ScaffoldError",
    "Scaffolder",
    "StorageError",
    "TargetExistsError",
    "TemplateError",
    "ValidationError",
    "allocate",
]

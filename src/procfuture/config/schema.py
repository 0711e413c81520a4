"""Pydantic validation models for procfuture configuration.

Defines the schema for YAML configuration files with validation
rules and sensible defaults.
"""

import re
from typing import Dict, List, Any, Optional, Literal
from pydantic import BaseModel, Field, field_validator, model_validator


class SinkSchema(BaseModel):
    """Configuration for an observability sink.

    Attributes:
        type: Sink type (file, console, memory, null).
        path: File path for file sinks.
        options: Additional sink-specific options.
    """

    type: Literal["file", "console", "memory", "null"] = "file"
    path: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_file_sink_has_path(self) -> "SinkSchema":
        """Validate that file sinks have a path."""
        if self.type == "file" and not self.path:
            raise ValueError("File sink requires 'path' to be set")
        return self


class ObservabilitySchema(BaseModel):
    """Configuration for observability/tracing.

    Attributes:
        level: Trace level (off, minimal, normal, verbose).
        sinks: List of sink configurations.
    """

    level: Literal["off", "minimal", "normal", "verbose"] = "off"
    sinks: List[SinkSchema] = Field(default_factory=list)


class WorkerSchema(BaseModel):
    """How task workers are started.

    Attributes:
        python: Interpreter to run workers with (default: sys.executable).
        flags: Interpreter flags placed before ``-m``.
        init_modules: Modules each worker imports before reading its task.
        inherit_sys_path: Pass the caller's sys.path to workers via PYTHONPATH.
        log_level: Logging level inside workers.
    """

    python: Optional[str] = None
    flags: List[str] = Field(default_factory=lambda: ["-u", "-s"])
    init_modules: List[str] = Field(default_factory=list)
    inherit_sys_path: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("flags")
    @classmethod
    def validate_flags(cls, v: List[str]) -> List[str]:
        """Flags must be options, not a script or module to run."""
        for flag in v:
            if not flag.startswith("-"):
                raise ValueError(f"Worker flag must start with '-': {flag!r}")
            if flag in ("-m", "-c"):
                raise ValueError(f"Worker flag {flag!r} is reserved")
        return v


class CaptureSchema(BaseModel):
    """Variable capture defaults.

    Attributes:
        default_exclude: Pattern of names capture() skips unless told otherwise.
    """

    default_exclude: str = "^_"

    @field_validator("default_exclude")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Validate that the pattern compiles."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid exclude pattern {v!r}: {e}")
        return v


class ConfigSchema(BaseModel):
    """Root configuration schema.

    Attributes:
        version: Configuration file version (currently "1.0").
        encoding: Text encoding of process pipes.
        retain_buffers: Keep output buffers of completed processes for
            post-mortem inspection instead of releasing them.
        worker: Worker startup settings.
        capture: Variable capture settings.
        observability: Tracing settings.
    """

    version: str = "1.0"
    encoding: str = "utf-8"
    retain_buffers: bool = False
    worker: WorkerSchema = Field(default_factory=WorkerSchema)
    capture: CaptureSchema = Field(default_factory=CaptureSchema)
    observability: ObservabilitySchema = Field(default_factory=ObservabilitySchema)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate configuration version."""
        supported = {"1.0"}
        if v not in supported:
            raise ValueError(
                f"Unsupported config version: {v}. Supported: {supported}"
            )
        return v

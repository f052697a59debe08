"""Build value tables and stage documents."""

from buildlayer.specs.loader import (
    load_build_values,
    load_dml_index,
    load_overrides,
    load_value_file,
)
from buildlayer.specs.models import (
    BuildValue,
    DataType,
    DmlIndexEntry,
    OverrideValue,
    ValueTable,
)
from buildlayer.specs.resolver import (
    ResolverOptions,
    ValueTableResolver,
    apply_overrides,
    resolve_value_table,
    sha256_file,
)
from buildlayer.specs.stages import collect_placeholders, discover_stage_files, load_stages
from buildlayer.specs.template import (
    ObjectSpec,
    PlaceholderRef,
    StageTemplate,
    extract_placeholders,
    parse_stage,
    parse_stage_filename,
    placeholder_pattern,
    render_document,
)

__all__ = [
    "BuildValue",
    "DataType",
    "DmlIndexEntry",
    "ObjectSpec",
    "OverrideValue",
    "PlaceholderRef",
    "ResolverOptions",
    "StageTemplate",
    "ValueTable",
    "ValueTableResolver",
    "apply_overrides",
    "collect_placeholders",
    "discover_stage_files",
    "extract_placeholders",
    "load_build_values",
    "load_dml_index",
    "load_overrides",
    "load_stages",
    "load_value_file",
    "parse_stage",
    "parse_stage_filename",
    "placeholder_pattern",
    "render_document",
    "resolve_value_table",
    "sha256_file",
]

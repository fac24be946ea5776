"""Schema document parser -- load documents and resolve ``$ref`` pointers.

Typical usage::

    from schemacli.parser import load_spec_documents, flatten_schema

    documents = load_spec_documents()
    spec = documents[0].spec
    shape = flatten_schema(spec, some_schema)

Sub-modules:

* :mod:`~schemacli.parser.loader` -- Read every JSON/YAML document in a
  directory and validate it into a :class:`~schemacli.models.SpecDocument`.
* :mod:`~schemacli.parser.resolver` -- Cycle-guarded ``$ref`` resolution and
  ``allOf`` flattening.
"""

from schemacli.parser.loader import load_spec_documents
from schemacli.parser.resolver import deref_schema, flatten_schema

__all__ = ["load_spec_documents", "deref_schema", "flatten_schema"]

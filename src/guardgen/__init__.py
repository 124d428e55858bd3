"""Guarded-region code generation and round-trip rewriting.

Regenerates the computed portions of a source file from a model snapshot
while preserving developer-authored text. Managed regions are demarcated by
comment delimiters in the target language's syntax:

    // <generated:props:start>
    ...computed content...
    // <generated:props:end>

Anything outside the delimiters, and anything inside a guard region, is
preserved untouched.
"""

__version__ = "0.3.0"

# Closed set of marker kinds recognised in delimiters
KINDS = ("guard", "generated", "conditional", "import", "template")

# Delimiter token templates (without the surrounding comment syntax)
START_TOKEN = "<{kind}:{id}:start>"
END_TOKEN = "<{kind}:{id}:end>"

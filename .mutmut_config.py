"""
Mutation testing configuration for mutmut.

Mutations are concentrated on the watermark decision core (progression
arithmetic, reconciliation, metadata rewrite, generation); plumbing around
it is skipped.
"""

CORE_MODULES = (
    "identity_sync/progression.py",
    "identity_sync/watermark.py",
    "identity_sync/metadata.py",
    "identity_sync/generator.py",
)


def pre_mutation(context):
    """
    Hook called before each mutation.

    Skips everything outside the core modules and low-value lines inside them.
    """
    if not context.filename.endswith(CORE_MODULES):
        context.skip = True
        return

    line = context.current_source_line.strip()

    # Log and error message text does not affect decisions
    if line.startswith(("logger.", "f\"", "raise ")):
        context.skip = True

    if '"""' in line or line.startswith("#"):
        context.skip = True

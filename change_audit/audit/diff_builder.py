"""Field-level diff of one tracked mutation."""

from typing import Dict

from change_audit.audit.tracking import MutationRecord
from change_audit.domain.models.audit import EntityState, FieldDiff


def build_diff(mutation: MutationRecord) -> Dict[str, FieldDiff]:
    """
    Map changed field names to before/after pairs.

    Temporary fields (values still unresolved, e.g. keys generated on commit)
    are never included. Added entities report every field as new, Deleted
    entities report every field as removed, Modified entities report only the
    fields flagged as modified. An empty result means nothing meaningful changed.
    """
    diffs: Dict[str, FieldDiff] = {}

    for prop in mutation.properties():
        if prop.is_temporary:
            continue

        if mutation.state == EntityState.ADDED:
            diffs[prop.name] = FieldDiff(old=None, new=prop.current_value)
            continue

        if mutation.state == EntityState.DELETED:
            diffs[prop.name] = FieldDiff(old=prop.original_value, new=None)
            continue

        if mutation.state == EntityState.MODIFIED and prop.is_modified:
            diffs[prop.name] = FieldDiff(old=prop.original_value, new=prop.current_value)

    return diffs

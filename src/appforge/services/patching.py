"""Apply exact search/replace patches to markup."""

import logging
from collections.abc import Sequence

from appforge.errors.exceptions import PatchNotApplicable
from appforge.models.document import PatchOperation

logger = logging.getLogger(__name__)


def apply_patches(markup: str, patches: Sequence[PatchOperation]) -> str:
    """Apply ``patches`` in order and return the patched markup.

    Each operation replaces the first occurrence of its ``search`` text in the
    text produced by the operations before it. If any ``search`` text is
    missing the whole list is abandoned: PatchNotApplicable is raised and the
    caller still holds the unmodified ``markup``.
    """
    current = markup
    for index, patch in enumerate(patches):
        position = current.find(patch.search)
        if position == -1:
            logger.info("Patch %d of %d not applicable, discarding patch list", index + 1, len(patches))
            raise PatchNotApplicable(index, patch.search)
        if current.find(patch.search, position + 1) != -1:
            logger.warning("Patch %d search text is ambiguous, replacing first occurrence", index + 1)
        current = current[:position] + patch.replace + current[position + len(patch.search):]

    logger.info("Applied %d patch(es): %d -> %d chars", len(patches), len(markup), len(current))
    return current

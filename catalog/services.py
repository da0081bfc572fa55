from typing import Dict, Iterable

from .models import Template


def resolve_by_ids(ids: Iterable[int]) -> Dict[int, Template]:
    """Fetch the templates for ``ids`` in one query, keyed by id.

    Inactive templates are included; callers decide what is sellable.
    Ids that do not exist are simply absent from the result.
    """
    unique_ids = {int(i) for i in ids}
    if not unique_ids:
        return {}
    return {t.pk: t for t in Template.objects.filter(pk__in=unique_ids)}

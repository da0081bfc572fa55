from django.test import TestCase

from .models import Template
from .services import resolve_by_ids


class ResolveByIdsTests(TestCase):
    def setUp(self):
        self.active = Template.objects.create(
            title="Budget Planner", slug="budget-planner", file_url="t/budget.xlsx",
            price_inr=50000, status=Template.STATUS_ACTIVE,
        )
        self.draft = Template.objects.create(
            title="Draft", slug="draft", file_url="t/draft.xlsx", price_inr=100,
        )

    def test_includes_inactive_and_skips_unknown(self):
        found = resolve_by_ids([self.active.pk, self.draft.pk, self.active.pk, 9999])
        self.assertEqual(set(found), {self.active.pk, self.draft.pk})
        self.assertTrue(found[self.active.pk].is_active)
        self.assertFalse(found[self.draft.pk].is_active)

    def test_empty(self):
        self.assertEqual(resolve_by_ids([]), {})

from uuid import uuid4

from django.test import SimpleTestCase

from fitlog.api.schemas import CamelSchema, ErrorOut, to_camel


class ProgressOut(CamelSchema):
    job_id: str
    items_fetched: int


class CamelSchemaTests(SimpleTestCase):
    def test_to_camel(self):
        self.assertEqual(to_camel("items_fetched"), "itemsFetched")
        self.assertEqual(to_camel("last_progress_at"), "lastProgressAt")
        self.assertEqual(to_camel("status"), "status")

    def test_dumps_camel_case_by_alias(self):
        job_id = str(uuid4())
        payload = ProgressOut(job_id=job_id, items_fetched=3)
        self.assertEqual(
            payload.model_dump(by_alias=True), {"jobId": job_id, "itemsFetched": 3}
        )

    def test_accepts_either_name(self):
        self.assertEqual(ProgressOut(jobId="a", itemsFetched=1).items_fetched, 1)
        self.assertEqual(ProgressOut(job_id="a", items_fetched=1).job_id, "a")

    def test_error_out(self):
        self.assertEqual(
            ErrorOut(detail="Not Found").model_dump(by_alias=True),
            {"detail": "Not Found"},
        )

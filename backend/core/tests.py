from django.http import Http404
from django.test import SimpleTestCase
from rest_framework import exceptions, serializers

from core.exceptions import (
	AlreadyExists,
	FailedPrecondition,
	InvalidArgument,
	NotFound,
	exception_handler,
	first_validation_error,
)
from core.responses import success
from core.validation import coerce_id, validate_payload


class _SamplePayloadSerializer(serializers.Serializer):
	name = serializers.CharField()
	count = serializers.IntegerField(min_value=1)


class ExceptionHandlerTests(SimpleTestCase):
	def test_service_error_renders_envelope(self):
		res = exception_handler(
			FailedPrecondition("Aucune politique.", reason="no_active_policy", field="policy"),
			{},
		)

		self.assertEqual(res.status_code, 409)
		self.assertEqual(
			res.data,
			{
				"success": False,
				"error": {
					"code": "failed-precondition",
					"message": "Aucune politique.",
					"field": "policy",
					"reason": "no_active_policy",
				},
			},
		)

	def test_status_codes_per_error_kind(self):
		self.assertEqual(exception_handler(NotFound(), {}).status_code, 404)
		self.assertEqual(exception_handler(AlreadyExists(), {}).status_code, 409)
		self.assertEqual(exception_handler(InvalidArgument(), {}).status_code, 400)

	def test_drf_validation_error_becomes_invalid_argument(self):
		exc = exceptions.ValidationError({"email": ["Adresse invalide."]}, code="invalid")

		res = exception_handler(exc, {})

		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data["error"]["code"], "invalid-argument")
		self.assertEqual(res.data["error"]["field"], "email")

	def test_django_404_becomes_not_found(self):
		res = exception_handler(Http404(), {})

		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data["error"]["code"], "not-found")

	def test_unreadable_body_becomes_invalid_argument(self):
		res = exception_handler(exceptions.ParseError(), {})

		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data["error"]["code"], "invalid-argument")

		res = exception_handler(exceptions.UnsupportedMediaType("text/plain"), {})

		self.assertEqual(res.status_code, 415)
		self.assertEqual(res.data["error"]["code"], "invalid-argument")

	def test_unexpected_error_is_internal(self):
		with self.assertLogs("core.exceptions", level="ERROR"):
			res = exception_handler(RuntimeError("boom"), {})

		self.assertEqual(res.status_code, 500)
		self.assertEqual(res.data["error"]["code"], "internal")
		self.assertNotIn("boom", res.data["error"]["message"])


class ValidationHelpersTests(SimpleTestCase):
	def test_first_validation_error_walks_nested_detail(self):
		serializer = _SamplePayloadSerializer(data={"name": "x", "count": 0})
		serializer.is_valid()

		field, reason, _ = first_validation_error(serializer.errors)

		self.assertEqual((field, reason), ("count", "min_value"))

	def test_validate_payload_reports_first_violation(self):
		with self.assertRaises(InvalidArgument) as ctx:
			validate_payload(_SamplePayloadSerializer, {"count": 2})

		self.assertEqual(ctx.exception.field, "name")
		self.assertEqual(ctx.exception.reason, "required")

	def test_validate_payload_rejects_non_object(self):
		with self.assertRaises(InvalidArgument) as ctx:
			validate_payload(_SamplePayloadSerializer, ["name"])

		self.assertEqual(ctx.exception.reason, "invalid_payload")

	def test_validate_payload_returns_coerced_data(self):
		self.assertEqual(validate_payload(_SamplePayloadSerializer, {"name": "a", "count": "3"}), {"name": "a", "count": 3})

	def test_coerce_id(self):
		self.assertEqual(coerce_id(" 12 ", "member_id"), 12)
		for bad in (True, 0, -3, "abc", None):
			with self.assertRaises(InvalidArgument):
				coerce_id(bad, "member_id")

	def test_success_envelope(self):
		res = success({"id": 1}, status=201)

		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data, {"success": True, "data": {"id": 1}})

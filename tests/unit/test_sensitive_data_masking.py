import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_phone_number_masked(self):
        from config.logconfig import mask_sensitive_data

        event_dict = {"event": "test", "contact": "call 9876543210 at the gate"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "9876543210" not in result["contact"]
        assert "***MASKED***" in result["contact"]

    def test_password_masked(self):
        from config.logconfig import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.logconfig import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        from config.logconfig import mask_sensitive_data

        event_dict = {"event": "order.created", "order_id": "APR000042"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_id"] == "APR000042"
        assert result["event"] == "order.created"

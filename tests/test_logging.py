import pytest

from config.settings import mask_sensitive_data


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "card",
        ["4111 1111 1111 1111", "4111-1111-1111-1111", "5500000000000004"],
    )
    def test_card_number_masked_in_log_output(self, card):
        event_dict = {"event": "test", "payment": f"card {card} declined"}
        result = mask_sensitive_data(None, None, event_dict)
        assert card not in result["payment"]
        assert result["payment"].startswith("card ***MASKED***")

    def test_password_masked_in_log_output(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked_in_log_output(self):
        event_dict = {"event": "test", "header": "Authorization: Bearer-abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        event_dict = {
            "event": "order.created",
            "order_number": "ORD-20261018-A1B2C3",
            "postal_code": "560001",
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result == {
            "event": "order.created",
            "order_number": "ORD-20261018-A1B2C3",
            "postal_code": "560001",
        }

    def test_non_string_values_are_left_alone(self):
        event_dict = {"event": "test", "quantity": 4111111111111111}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["quantity"] == 4111111111111111

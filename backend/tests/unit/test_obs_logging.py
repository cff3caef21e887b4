import json
import logging

from dishlist.obs import logging as obs_logging


def _record(**extra) -> logging.LogRecord:
	record = logging.LogRecord("dishlist.test", logging.INFO, __file__, 1, "search.users results=%d", (3,), None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_emits_json_with_request_context():
	tokens = obs_logging.bind_context(request_id="req-1", route="/search")
	try:
		payload = json.loads(obs_logging.JSONLogFormatter().format(_record()))
	finally:
		obs_logging.reset_context(tokens)

	assert payload["msg"] == "search.users results=3"
	assert payload["level"] == "info"
	assert payload["request_id"] == "req-1"
	assert payload["route"] == "/search"
	assert obs_logging.current_request_id() is None


def test_formatter_redacts_sensitive_extras_and_truncates():
	record = _record(access_token="abc", user_email="a@b.c", query="x" * 400, ids=list(range(20)))

	payload = json.loads(obs_logging.JSONLogFormatter().format(record))

	assert payload["access_token"] == "[redacted]"
	assert payload["user_email"] == "[redacted]"
	assert len(payload["query"]) == 257
	assert len(payload["ids"]) == 11

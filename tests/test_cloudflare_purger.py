"""
Tests for the Cloudflare purge dispatcher.
"""

import pytest
import requests

from signed_transforms.cloudflare_purger import CLOUDFLARE_API_BASE, CloudflarePurger, dispatch
from signed_transforms.errors import ProviderRejectionError, TransportError
from signed_transforms.models import PurgeBatch
from signed_transforms.settings import PurgeCredentials

from .conftest import make_response

CREDENTIALS = PurgeCredentials(zone_id="zone123", api_token="token456")
URLS = ("https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg")


@pytest.fixture
def purger(session) -> CloudflarePurger:
    return CloudflarePurger(CREDENTIALS, session=session)


class TestDispatch:

    def test_success(self, purger, session):
        outcome = purger.dispatch(PurgeBatch(urls=URLS))

        assert outcome.success is True
        assert outcome.status_code == 200
        assert outcome.errors == []
        session.post.assert_called_once_with(
            f"{CLOUDFLARE_API_BASE}/zones/zone123/purge_cache",
            json={'files': list(URLS)},
            timeout=30,
        )

    def test_bearer_auth_header(self, purger, session):
        assert session.headers['Authorization'] == 'Bearer token456'

    def test_prefix_not_sent_with_files(self, purger, session):
        purger.dispatch(PurgeBatch(urls=URLS, prefix="https://worker.example.com/thumbs?url=abc"))
        assert session.post.call_args.kwargs['json'] == {'files': list(URLS)}

    def test_one_purge_type_per_request(self, purger, session):
        purger.dispatch(PurgeBatch(urls=URLS))
        purger.purge_tags(["gallery"])
        purger.purge_prefixes(["https://worker.example.com/thumbs?url=abc"])

        payloads = [call.kwargs['json'] for call in session.post.call_args_list]
        assert [set(payload) for payload in payloads] == [{'files'}, {'tags'}, {'prefixes'}]

    def test_false_success_flag_is_failure(self, purger, session):
        session.post.return_value = make_response(
            200, {'success': False, 'errors': [{'code': 1012, 'message': 'Request must contain one of purge_everything, files, tags'}]}
        )
        outcome = purger.dispatch(PurgeBatch(urls=URLS))

        assert outcome.success is False
        assert outcome.errors == ['1012: Request must contain one of purge_everything, files, tags']

    def test_non_200_is_failure(self, purger, session):
        session.post.return_value = make_response(403, {'success': True, 'errors': []})
        outcome = purger.dispatch(PurgeBatch(urls=URLS))

        assert outcome.success is False
        assert outcome.status_code == 403
        assert outcome.errors == ['Unknown error']

    def test_invalid_json_is_failure(self, purger, session):
        session.post.return_value = make_response(502, ValueError("not json"))
        outcome = purger.dispatch(PurgeBatch(urls=URLS))

        assert outcome.success is False
        assert outcome.errors == ['Invalid JSON response']

    def test_rejection_raised_on_request(self, purger, session):
        session.post.return_value = make_response(400, {'success': False, 'errors': [{'message': 'bad'}]})
        outcome = purger.dispatch(PurgeBatch(urls=URLS))

        with pytest.raises(ProviderRejectionError) as exc_info:
            outcome.raise_for_status()
        assert exc_info.value.status_code == 400
        assert exc_info.value.errors == ['bad']

    def test_network_error_becomes_transport_error(self, purger, session):
        session.post.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(TransportError):
            purger.dispatch(PurgeBatch(urls=URLS))

    def test_timeout_becomes_transport_error(self, purger, session):
        session.post.side_effect = requests.Timeout("timed out")
        with pytest.raises(TransportError):
            purger.dispatch(PurgeBatch(urls=URLS))

    def test_no_automatic_retry(self, purger, session):
        session.post.return_value = make_response(500, {'success': False, 'errors': []})
        purger.dispatch(PurgeBatch(urls=URLS))
        assert session.post.call_count == 1

    def test_module_level_dispatch(self, session):
        outcome = dispatch(PurgeBatch(urls=URLS), CREDENTIALS, session=session)
        assert outcome.success


class TestOtherPurges:

    def test_purge_everything(self, purger, session):
        assert purger.purge_everything().success
        assert session.post.call_args.kwargs['json'] == {'purge_everything': True}

    def test_purge_tags(self, purger, session):
        purger.purge_tags(["a", "b"])
        assert session.post.call_args.kwargs['json'] == {'tags': ["a", "b"]}

    def test_purge_prefixes_strips_scheme(self, purger, session):
        purger.purge_prefixes(["https://worker.example.com/thumbs?url=abc"])
        assert session.post.call_args.kwargs['json'] == {'prefixes': ["worker.example.com/thumbs?url=abc"]}

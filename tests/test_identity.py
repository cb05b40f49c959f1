"""
Tests for client identity resolution.
"""
import re

from conftest import make_settings
from tracking_app.services.identity import IdentityResolver, client_id_from_ga_cookie
from tracking_app.session.cookies import CookieJar, TEN_YEARS, TWO_YEARS

UUID4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


def resolver(**overrides) -> IdentityResolver:
    return IdentityResolver(make_settings(**overrides))


class TestClientId:
    """Test client ID resolution order"""

    def test_ga_cookie(self):
        cid, cookie = resolver().resolve_client_id({"_ga": "GA1.2.111.222"})

        assert cid == "111.222"
        assert cookie.name == "_ia"
        assert cookie.value == "111.222"
        assert cookie.max_age == TWO_YEARS

    def test_ga_cookie_keeps_extra_dots(self):
        """Everything from the third field on is the client ID"""
        assert client_id_from_ga_cookie("GA1.2.111.222.333") == "111.222.333"

    def test_ga_cookie_beats_fallback_cookie(self):
        cid, _ = resolver().resolve_client_id({"_ga": "GA1.2.111.222", "_ia": "abc123"})
        assert cid == "111.222"

    def test_fallback_cookie(self):
        cid, cookie = resolver().resolve_client_id({"_ia": "abc123"})

        assert cid == "abc123"
        assert cookie is None  # existing identity is not rewritten

    def test_empty_fallback_cookie_is_ignored(self):
        cid, _ = resolver(require_ga_cookie_client_id=True).resolve_client_id({"_ia": ""})
        assert cid == ""

    def test_generates_uuid(self):
        cid, cookie = resolver(require_ga_cookie_client_id=False).resolve_client_id({})

        assert UUID4.match(cid)
        assert cookie.name == "_ia"
        assert cookie.value == cid

    def test_generated_ids_differ(self):
        r = resolver(require_ga_cookie_client_id=False)
        assert r.resolve_client_id({})[0] != r.resolve_client_id({})[0]

    def test_no_uuid_when_ga_cookie_required(self):
        cid, cookie = resolver(require_ga_cookie_client_id=True).resolve_client_id({})

        assert cid == ""
        assert cookie is None

    def test_malformed_ga_cookie_falls_through(self):
        """An unparsable _ga cookie counts as absent"""
        assert client_id_from_ga_cookie("GA1") is None

        cid, _ = resolver().resolve_client_id({"_ga": "GA1", "_ia": "abc123"})
        assert cid == "abc123"

        cid, _ = resolver().resolve_client_id({"_ga": "garbage"})
        assert UUID4.match(cid)

    def test_cookie_write_can_be_disabled(self):
        cid, cookie = resolver(create_client_id_cookie=False).resolve_client_id({})

        assert cid
        assert cookie is None


class TestAdClickId:
    """Test gclid handling"""

    def test_gclid_from_query(self):
        gclid, cookie = resolver().resolve_ad_click_id({"gclid": "abc-click"}, {})

        assert gclid == "abc-click"
        assert cookie.name == "gclid"
        assert cookie.max_age == TEN_YEARS

    def test_gclid_cookie_can_be_disabled(self):
        gclid, cookie = resolver(create_gclid_cookie=False).resolve_ad_click_id({"gclid": "abc-click"}, {})

        assert gclid == "abc-click"
        assert cookie is None

    def test_gclid_from_earlier_visit(self):
        gclid, cookie = resolver().resolve_ad_click_id({}, {"gclid": "old-click"})

        assert gclid == "old-click"
        assert cookie is None

    def test_no_gclid(self):
        assert resolver().resolve_ad_click_id({"gclid": ""}, {}) == (None, None)


class TestResolveWithCookieJar:
    """Test cookie writes through the CookieStore capability"""

    def test_writes_cookies_to_jar(self):
        jar = CookieJar({})

        identity = resolver().resolve({"gclid": "click-1"}, jar)

        names = sorted(cookie.name for cookie in jar.pending)
        assert names == ["_ia", "gclid"]
        assert identity.ad_click_id == "click-1"
        assert jar.get("_ia") == identity.client_id

    def test_cookie_written_once_per_request(self):
        """A second resolution in the same request reuses the new cookie"""
        jar = CookieJar({})
        r = resolver()

        first = r.resolve({}, jar)
        second = r.resolve({}, jar)

        assert first.client_id == second.client_id
        assert len(jar.pending) == 1

    def test_existing_identity_writes_nothing(self):
        jar = CookieJar({"_ia": "abc123"})

        identity = resolver().resolve({}, jar)

        assert identity.client_id == "abc123"
        assert jar.pending == []

"""
Tests for eve_apiv2.session - the key-level entry point.
"""

from datetime import datetime, timezone

import pytest


@pytest.mark.httpx
class TestNewSession:
    def test_characters_prefilled_without_calls(
        self, api_client, caches, httpx_mock, url_for, key_info_xml
    ):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)

        session = new_session(123456, "secret-vcode", client=api_client, caches=caches)
        (pilot,) = session.characters()

        assert pilot.character_id == 90000001
        assert pilot.name == "Test Pilot"
        assert pilot.corporation_id == 98000001
        assert pilot.corporation_name == "Test Corp"
        assert pilot.is_covered
        assert len(httpx_mock.get_requests()) == 1

    def test_key_properties(self, api_client, caches, httpx_mock, url_for, key_info_xml):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)

        session = new_session(123456, "secret-vcode", client=api_client, caches=caches)

        assert session.key_id == 123456
        assert session.key_type == "Character"
        assert session.mask == 268435455
        assert session.credential.scope.never_expires
        assert session.cached_until == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert session.is_cached(now=datetime(2013, 9, 1, tzinfo=timezone.utc))
        assert session.corporations() == []

    def test_corporation_key(self, api_client, caches, httpx_mock, url_for, corp_key_info_xml):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=corp_key_info_xml)

        session = new_session(123456, "secret-vcode", client=api_client, caches=caches)
        (corp,) = session.corporations()

        assert corp.corporation_id == 98000001
        assert corp.name == "Test Corp"
        assert session.expires == datetime(2031, 1, 1, tzinfo=timezone.utc)

    def test_alliances(
        self, api_client, caches, httpx_mock, url_for, key_info_xml, alliance_list_xml
    ):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)
        httpx_mock.add_response(url=url_for("eve/AllianceList"), content=alliance_list_xml)

        session = new_session(123456, "secret-vcode", client=api_client, caches=caches)
        alliances = session.alliances()

        assert {a.short_name for a in alliances} == {"TEST", "CONDI"}
        assert "keyID" not in httpx_mock.get_requests()[1].url.params

    def test_invalid_key_is_fatal(self, api_client, caches, httpx_mock, url_for, xml_error):
        from eve_apiv2 import InvalidCredential, new_session

        httpx_mock.add_response(
            url=url_for("account/APIKeyInfo"), content=xml_error(203, "Authentication failure.")
        )

        with pytest.raises(InvalidCredential):
            new_session(123456, "wrong", client=api_client, caches=caches)

    def test_owned_client_closed_with_session(self, httpx_mock, url_for, key_info_xml):
        from eve_apiv2 import new_session
        from eve_apiv2.core.cache import get_cache_registry

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)

        with new_session(123456, "secret-vcode") as session:
            client = session.context.client
            assert session.context.caches is get_cache_registry()
            assert client._http_client is not None

        assert client._http_client is None

    def test_borrowed_client_left_open(
        self, api_client, caches, httpx_mock, url_for, key_info_xml
    ):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)

        with new_session(123456, "secret-vcode", client=api_client, caches=caches):
            pass

        assert api_client._http_client is not None


@pytest.mark.httpx
class TestSessionWalk:
    """End-to-end: key, character, corporation, alliance."""

    def test_walk_from_key_to_alliance(
        self,
        api_client,
        caches,
        httpx_mock,
        url_for,
        key_info_xml,
        character_info_private_xml,
        character_sheet_xml,
        corporation_sheet_xml,
        alliance_list_xml,
    ):
        from eve_apiv2 import new_session

        httpx_mock.add_response(url=url_for("account/APIKeyInfo"), content=key_info_xml)
        httpx_mock.add_response(
            url=url_for("eve/CharacterInfo"), content=character_info_private_xml
        )
        httpx_mock.add_response(url=url_for("char/CharacterSheet"), content=character_sheet_xml)
        httpx_mock.add_response(
            url=url_for("corp/CorporationSheet"), content=corporation_sheet_xml
        )
        httpx_mock.add_response(url=url_for("eve/AllianceList"), content=alliance_list_xml)

        session = new_session(123456, "secret-vcode", client=api_client, caches=caches)
        (pilot,) = session.characters()

        assert pilot.gender == "Female"
        assert pilot.corporation.ticker == "TCRP"
        assert pilot.corporation.alliance.short_name == "TEST"
        assert pilot.alliance.executor.ticker == "TCRP"
        assert len(httpx_mock.get_requests()) == 5

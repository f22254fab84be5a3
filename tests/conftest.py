"""
EVE API v2 Test Suite - Shared Fixtures and Configuration

Provides XML API payloads, a context wired to a fresh cache registry, and
the autouse reset of module-level singletons.

Transport is mocked with pytest-httpx: register one response per expected
request and count dispatched calls with httpx_mock.get_requests().
"""

import re
from datetime import datetime, timezone
from typing import Callable, Optional

import pytest

from eve_apiv2.core.constants import API_BASE_URL, API_SUFFIX

# Every fixture document is cached until well after any test runs
CACHED_UNTIL = "2030-01-01 00:00:00"
CURRENT_TIME = "2013-09-01 12:00:00"

PILOT_ID = 90000001
OTHER_PILOT_ID = 90000002
CORP_ID = 98000001
SCHOOL_CORP_ID = 1000009
ALLIANCE_ID = 99000001


def api_document(
    result: str,
    cached_until: str = CACHED_UNTIL,
    current_time: str = CURRENT_TIME,
) -> bytes:
    """Wrap result XML in the XML API envelope."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<eveapi version="2">'
        f"<currentTime>{current_time}</currentTime>"
        f"<result>{result}</result>"
        f"<cachedUntil>{cached_until}</cachedUntil>"
        "</eveapi>"
    ).encode("utf-8")


def api_error(code: int, message: str) -> bytes:
    """An XML API error document."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<eveapi version="2">'
        f"<currentTime>{CURRENT_TIME}</currentTime>"
        f'<error code="{code}">{message}</error>'
        f"<cachedUntil>{CACHED_UNTIL}</cachedUntil>"
        "</eveapi>"
    ).encode("utf-8")


def endpoint_url(endpoint: str) -> re.Pattern:
    """URL matcher for an endpoint, whatever its query string."""
    return re.compile(re.escape(f"{API_BASE_URL}/{endpoint}{API_SUFFIX}") + r"(\?.*)?$")


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def xml_document() -> Callable[..., bytes]:
    """
    Fixture providing the envelope builder.

    Usage:
        def test_something(xml_document):
            body = xml_document("<characterID>1</characterID>")
    """
    return api_document


@pytest.fixture
def xml_error() -> Callable[[int, str], bytes]:
    return api_error


@pytest.fixture
def url_for() -> Callable[[str], re.Pattern]:
    """Fixture providing the endpoint URL matcher."""
    return endpoint_url


@pytest.fixture
def fixed_datetime() -> datetime:
    """A point in time before every fixture's cachedUntil."""
    return datetime(2013, 9, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# XML API Payload Fixtures
# =============================================================================


def key_info_body(key_type: str = "Character", expires: str = "") -> bytes:
    return api_document(
        f'<key accessMask="268435455" type="{key_type}" expires="{expires}">'
        '<rowset name="characters" key="characterID" '
        'columns="characterID,characterName,corporationID,corporationName">'
        f'<row characterID="{PILOT_ID}" characterName="Test Pilot" '
        f'corporationID="{CORP_ID}" corporationName="Test Corp" />'
        "</rowset>"
        "</key>"
    )


@pytest.fixture
def key_info_xml() -> bytes:
    """account/APIKeyInfo for a Character key covering PILOT_ID."""
    return key_info_body()


@pytest.fixture
def corp_key_info_xml() -> bytes:
    """account/APIKeyInfo for a Corporation key of CORP_ID."""
    return key_info_body(key_type="Corporation", expires="2031-01-01 00:00:00")


@pytest.fixture
def skill_tree_xml() -> bytes:
    return api_document(
        '<rowset name="skillGroups" key="groupID" columns="groupName,groupID">'
        '<row groupName="Gunnery" groupID="255">'
        '<rowset name="skills" key="typeID" columns="typeName,groupID,typeID,published">'
        '<row typeName="Gunnery" groupID="255" typeID="3300" published="1">'
        "<description>Basic turret operation skill.</description>"
        "<rank>1</rank>"
        '<rowset name="requiredSkills" key="typeID" columns="typeID,skillLevel" />'
        "<requiredAttributes>"
        "<primaryAttribute>perception</primaryAttribute>"
        "<secondaryAttribute>willpower</secondaryAttribute>"
        "</requiredAttributes>"
        "</row>"
        '<row typeName="Small Hybrid Turret" groupID="255" typeID="3301" published="1">'
        "<description>Operation of small hybrid turrets.</description>"
        "<rank>1</rank>"
        '<rowset name="requiredSkills" key="typeID" columns="typeID,skillLevel">'
        '<row typeID="3300" skillLevel="1" />'
        "</rowset>"
        "<requiredAttributes>"
        "<primaryAttribute>perception</primaryAttribute>"
        "<secondaryAttribute>willpower</secondaryAttribute>"
        "</requiredAttributes>"
        "</row>"
        "</rowset>"
        "</row>"
        '<row groupName="Navigation" groupID="275">'
        '<rowset name="skills" key="typeID" columns="typeName,groupID,typeID,published">'
        '<row typeName="Navigation" groupID="275" typeID="3449" published="1">'
        "<description>Skill at navigating.</description>"
        "<rank>1</rank>"
        '<rowset name="requiredSkills" key="typeID" columns="typeID,skillLevel" />'
        "<requiredAttributes>"
        "<primaryAttribute>intelligence</primaryAttribute>"
        "<secondaryAttribute>perception</secondaryAttribute>"
        "</requiredAttributes>"
        "</row>"
        "</rowset>"
        "</row>"
        "</rowset>"
    )


@pytest.fixture
def certificate_tree_xml() -> bytes:
    return api_document(
        '<rowset name="categories" key="categoryID" columns="categoryID,categoryName">'
        '<row categoryID="3" categoryName="Core">'
        '<rowset name="classes" key="classID" columns="classID,className">'
        '<row classID="2" className="Core Fitting">'
        '<rowset name="certificates" key="certificateID" '
        'columns="certificateID,grade,corporationID,description">'
        '<row certificateID="5" grade="1" corporationID="1000125" '
        'description="Basic fitting knowledge." />'
        '<row certificateID="6" grade="2" corporationID="1000125" '
        'description="Standard fitting knowledge." />'
        "</rowset>"
        "</row>"
        "</rowset>"
        "</row>"
        '<row categoryID="4" categoryName="Leadership">'
        '<rowset name="classes" key="classID" columns="classID,className">'
        '<row classID="7" className="Fleet Command">'
        '<rowset name="certificates" key="certificateID" '
        'columns="certificateID,grade,corporationID,description">'
        '<row certificateID="20" grade="1" corporationID="1000125" '
        'description="Basic leadership." />'
        "</rowset>"
        "</row>"
        "</rowset>"
        "</row>"
        "</rowset>"
    )


@pytest.fixture
def alliance_list_xml() -> bytes:
    return api_document(
        '<rowset name="alliances" key="allianceID" '
        'columns="name,shortName,allianceID,executorCorpID,memberCount,startDate">'
        f'<row name="Test Alliance Please Ignore" shortName="TEST" allianceID="{ALLIANCE_ID}" '
        f'executorCorpID="{CORP_ID}" memberCount="2500" startDate="2010-05-01 12:00:00">'
        '<rowset name="memberCorporations" key="corporationID" '
        'columns="corporationID,startDate">'
        f'<row corporationID="{CORP_ID}" startDate="2010-05-01 12:00:00" />'
        '<row corporationID="98000002" startDate="2011-02-03 04:05:06" />'
        "</rowset>"
        "</row>"
        '<row name="Goonswarm Federation" shortName="CONDI" allianceID="1354830081" '
        'executorCorpID="1344654522" memberCount="9000" startDate="2010-06-01 00:00:00">'
        '<rowset name="memberCorporations" key="corporationID" '
        'columns="corporationID,startDate" />'
        "</row>"
        "</rowset>"
    )


@pytest.fixture
def corporation_sheet_xml() -> bytes:
    return api_document(
        f"<corporationID>{CORP_ID}</corporationID>"
        "<corporationName>Test Corp</corporationName>"
        "<ticker>TCRP</ticker>"
        f"<ceoID>{PILOT_ID}</ceoID>"
        "<ceoName>Test Pilot</ceoName>"
        "<stationID>60003760</stationID>"
        "<stationName>Jita IV - Moon 4 - Caldari Navy Assembly Plant</stationName>"
        "<description>A corporation for tests.</description>"
        "<url>http://example.com</url>"
        f"<allianceID>{ALLIANCE_ID}</allianceID>"
        "<allianceName>Test Alliance Please Ignore</allianceName>"
        "<taxRate>10</taxRate>"
        "<memberCount>42</memberCount>"
        "<shares>1000</shares>"
    )


def character_info_body(private: bool = False) -> bytes:
    extra = ""
    if private:
        extra = (
            "<accountBalance>1234567.89</accountBalance>"
            "<skillPoints>5000000</skillPoints>"
            "<shipName>Test Ship</shipName>"
            "<shipTypeID>587</shipTypeID>"
            "<shipTypeName>Rifter</shipTypeName>"
            "<lastKnownLocation>Jita</lastKnownLocation>"
        )
    return api_document(
        f"<characterID>{PILOT_ID}</characterID>"
        "<characterName>Test Pilot</characterName>"
        "<race>Caldari</race>"
        "<bloodline>Deteis</bloodline>"
        "<ancestry>Merchandisers</ancestry>"
        f"{extra}"
        f"<corporationID>{CORP_ID}</corporationID>"
        "<corporation>Test Corp</corporation>"
        "<corporationDate>2021-06-01 00:00:00</corporationDate>"
        f"<allianceID>{ALLIANCE_ID}</allianceID>"
        "<alliance>Test Alliance Please Ignore</alliance>"
        "<allianceDate>2021-06-01 00:00:00</allianceDate>"
        "<securityStatus>1.25</securityStatus>"
        '<rowset name="employmentHistory" key="recordID" '
        'columns="recordID,corporationID,corporationName,startDate">'
        f'<row recordID="2" corporationID="{CORP_ID}" corporationName="Test Corp" '
        'startDate="2021-06-01 00:00:00" />'
        f'<row recordID="1" corporationID="{SCHOOL_CORP_ID}" '
        'corporationName="School of Applied Knowledge" startDate="2020-01-10 00:00:00" />'
        "</rowset>"
    )


@pytest.fixture
def character_info_xml() -> bytes:
    """eve/CharacterInfo as seen without a covering key."""
    return character_info_body()


@pytest.fixture
def character_info_private_xml() -> bytes:
    """eve/CharacterInfo as seen with a covering key."""
    return character_info_body(private=True)


@pytest.fixture
def character_sheet_xml() -> bytes:
    return api_document(
        f"<characterID>{PILOT_ID}</characterID>"
        "<name>Test Pilot</name>"
        "<DoB>2019-12-24 18:30:00</DoB>"
        "<race>Caldari</race>"
        "<bloodLine>Deteis</bloodLine>"
        "<ancestry>Merchandisers</ancestry>"
        "<gender>Female</gender>"
        "<corporationName>Test Corp</corporationName>"
        f"<corporationID>{CORP_ID}</corporationID>"
        "<allianceName>Test Alliance Please Ignore</allianceName>"
        f"<allianceID>{ALLIANCE_ID}</allianceID>"
        "<cloneName>Clone Grade Alpha</cloneName>"
        "<cloneSkillPoints>900000</cloneSkillPoints>"
        "<balance>1234567.89</balance>"
        '<rowset name="skills" key="typeID" columns="typeID,skillpoints,level,published">'
        '<row typeID="3300" skillpoints="256000" level="5" published="1" />'
        '<row typeID="3449" skillpoints="45255" level="4" published="1" />'
        "</rowset>"
        '<rowset name="certificates" key="certificateID" columns="certificateID">'
        '<row certificateID="5" />'
        '<row certificateID="6" />'
        "</rowset>"
    )


@pytest.fixture
def skill_queue_xml() -> bytes:
    return api_document(
        '<rowset name="skillqueue" key="queuePosition" '
        'columns="queuePosition,typeID,level,startSP,endSP,startTime,endTime">'
        '<row queuePosition="1" typeID="3301" level="2" startSP="250" endSP="1415" '
        'startTime="2013-09-01 13:00:00" endTime="2013-09-01 14:00:00" />'
        '<row queuePosition="0" typeID="3301" level="1" startSP="0" endSP="250" '
        'startTime="2013-09-01 12:00:00" endTime="2013-09-01 13:00:00" />'
        "</rowset>"
    )


# =============================================================================
# Client, Credential and Context Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """ApiClient against the default base URL, closed after the test."""
    from eve_apiv2.core.client import ApiClient

    client = ApiClient()
    yield client
    client.close()


@pytest.fixture
def caches():
    """A fresh cache registry, independent of the process-wide one."""
    from eve_apiv2.core.cache import CacheRegistry

    return CacheRegistry()


def make_credential(
    character_ids: Optional[tuple[int, ...]] = (PILOT_ID,),
    corporation_ids: Optional[tuple[int, ...]] = None,
    kind: str = "Character",
):
    from eve_apiv2.core.auth import Credential, KeyCharacter, KeyScope

    characters = tuple(
        KeyCharacter(
            character_id=character_id,
            character_name="Test Pilot",
            corporation_id=CORP_ID,
            corporation_name="Test Corp",
        )
        for character_id in character_ids or ()
    )
    scope = KeyScope(
        kind=kind,
        mask=268435455,
        character_ids=character_ids,
        corporation_ids=corporation_ids,
        characters=characters,
    )
    return Credential(key_id=123456, v_code="secret-vcode", scope=scope)


@pytest.fixture
def credential():
    """A Character key covering PILOT_ID only."""
    return make_credential()


@pytest.fixture
def corp_credential():
    """A Corporation key covering CORP_ID."""
    return make_credential(corporation_ids=(CORP_ID,), kind="Corporation")


@pytest.fixture
def context(api_client, caches):
    """Context with no credential."""
    from eve_apiv2.core.context import ApiContext

    return ApiContext(client=api_client, caches=caches)


@pytest.fixture
def authed_context(context, credential):
    """Context carrying a key that covers PILOT_ID."""
    return context.with_credential(credential)


def request_params(request) -> dict[str, str]:
    """Query parameters of a captured httpx request."""
    return dict(request.url.params)


@pytest.fixture
def params_of() -> Callable:
    return request_params


# =============================================================================
# Singleton Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_all_singletons():
    """
    Reset all module-level singletons between tests.

    Runs before and after each test. Resets:
    - Settings cache (MUST be first - other modules read from settings)
    - Logging state (restores propagation so caplog sees records)
    - Process-wide cache registry
    """

    def do_reset():
        from eve_apiv2.core.cache import reset_cache_registry
        from eve_apiv2.core.config import reset_settings
        from eve_apiv2.core.logging import reset_logging

        reset_settings()
        reset_logging()
        reset_cache_registry()

    do_reset()
    yield
    do_reset()

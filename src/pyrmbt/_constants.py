"""Internal constants shared across the library."""

BASE_URL = "https://c01.netztest.at/RMBTControlServer"
IPV4_BASE_URL = "https://c01v4.netztest.at/RMBTControlServer"
IPV6_BASE_URL = "https://c01v6.netztest.at/RMBTControlServer"
MAP_SERVER_PATH = "/RMBTMapServer"
USER_AGENT = "pyrmbt"

# ------------------------------------------------------------------
# Control server endpoints (relative to the negotiated base URL)
# ------------------------------------------------------------------

ENDPOINT_SETTINGS = "settings"
ENDPOINT_NEWS = "news"
ENDPOINT_STATUS = "status"
ENDPOINT_TEST_REQUEST = "testRequest"
ENDPOINT_QOS_TEST_REQUEST = "qosTestRequest"
ENDPOINT_HISTORY = "history"
ENDPOINT_TEST_RESULT = "testresult"
ENDPOINT_TEST_RESULT_DETAIL = "testresultdetail"
ENDPOINT_QOS_TEST_RESULT = "qosTestResult"
ENDPOINT_SYNC = "sync"
ENDPOINT_RESULT = "result"
ENDPOINT_IP = "ip"

#: Status codes treated as success when the caller does not widen them.
DEFAULT_ACCEPTED_STATUS_CODES: frozenset[int] = frozenset(range(200, 300))

"""Impersonation catalogue: browser identities and operating systems."""

from enum import Enum

from masque._errors import UnknownIdentity, UnknownOS


class Family(Enum):
    """Header dialect shared by browsers of the same engine lineage."""
    CHROME = "chrome"
    FIREFOX = "firefox"
    SAFARI = "safari"
    NONE = "none"


# Token prefix -> header family. Edge is Chromium and speaks Chrome's dialect.
_FAMILY_PREFIXES = (
    ("chrome", Family.CHROME),
    ("edge", Family.CHROME),
    ("firefox", Family.FIREFOX),
    ("safari", Family.SAFARI),
)

_VARIANTS = ("ios", "ipad")


class Impersonate(Enum):
    """Browser identities that can be impersonated.

    Values are the wire tokens accepted by ``resolve_identity``. Adding a
    version is a one-line change here; nothing else needs to know.
    """
    CHROME_100 = "chrome_100"
    CHROME_101 = "chrome_101"
    CHROME_104 = "chrome_104"
    CHROME_105 = "chrome_105"
    CHROME_106 = "chrome_106"
    CHROME_107 = "chrome_107"
    CHROME_108 = "chrome_108"
    CHROME_109 = "chrome_109"
    CHROME_114 = "chrome_114"
    CHROME_116 = "chrome_116"
    CHROME_117 = "chrome_117"
    CHROME_118 = "chrome_118"
    CHROME_119 = "chrome_119"
    CHROME_120 = "chrome_120"
    CHROME_123 = "chrome_123"
    CHROME_124 = "chrome_124"
    CHROME_126 = "chrome_126"
    CHROME_127 = "chrome_127"
    CHROME_128 = "chrome_128"
    CHROME_129 = "chrome_129"
    CHROME_130 = "chrome_130"
    CHROME_131 = "chrome_131"
    CHROME_133 = "chrome_133"

    SAFARI_IOS_16_5 = "safari_ios_16.5"
    SAFARI_IOS_17_2 = "safari_ios_17.2"
    SAFARI_IOS_17_4_1 = "safari_ios_17.4.1"
    SAFARI_IOS_18_1_1 = "safari_ios_18.1.1"
    SAFARI_IPAD_18 = "safari_ipad_18"
    SAFARI_15_3 = "safari_15.3"
    SAFARI_15_5 = "safari_15.5"
    SAFARI_15_6_1 = "safari_15.6.1"
    SAFARI_16 = "safari_16"
    SAFARI_16_5 = "safari_16.5"
    SAFARI_17_0 = "safari_17.0"
    SAFARI_17_2_1 = "safari_17.2.1"
    SAFARI_17_4_1 = "safari_17.4.1"
    SAFARI_17_5 = "safari_17.5"
    SAFARI_18 = "safari_18"
    SAFARI_18_2 = "safari_18.2"

    OKHTTP_3_9 = "okhttp_3.9"
    OKHTTP_3_11 = "okhttp_3.11"
    OKHTTP_3_13 = "okhttp_3.13"
    OKHTTP_3_14 = "okhttp_3.14"
    OKHTTP_4_9 = "okhttp_4.9"
    OKHTTP_4_10 = "okhttp_4.10"
    OKHTTP_5 = "okhttp_5"

    EDGE_101 = "edge_101"
    EDGE_122 = "edge_122"
    EDGE_127 = "edge_127"
    EDGE_131 = "edge_131"

    FIREFOX_109 = "firefox_109"
    FIREFOX_117 = "firefox_117"
    FIREFOX_128 = "firefox_128"
    FIREFOX_133 = "firefox_133"
    FIREFOX_135 = "firefox_135"

    @property
    def product(self) -> str:
        """Leading token segment: chrome, edge, firefox, safari, okhttp."""
        return self.value.split("_", 1)[0]

    @property
    def family(self) -> Family:
        for prefix, family in _FAMILY_PREFIXES:
            if self.value.startswith(prefix):
                return family
        return Family.NONE

    @property
    def variant(self) -> str | None:
        """Device variant for Safari mobile identities ("ios"/"ipad")."""
        parts = self.value.split("_")
        if len(parts) == 3 and parts[1] in _VARIANTS:
            return parts[1]
        return None

    @property
    def version(self) -> str:
        return self.value.rsplit("_", 1)[1]


class ImpersonateOS(Enum):
    """Operating systems an identity can claim to run on."""
    ANDROID = "android"
    IOS = "ios"
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @property
    def is_mobile(self) -> bool:
        return self in (ImpersonateOS.ANDROID, ImpersonateOS.IOS)


_IDENTITY_BY_TOKEN: dict[str, Impersonate] = {
    m.value: m for m in Impersonate
}
_OS_BY_TOKEN: dict[str, ImpersonateOS] = {m.value: m for m in ImpersonateOS}


def resolve_identity(token: "str | Impersonate | None") -> Impersonate | None:
    """Parse an identity token (case-insensitive, exact match).

    ``None`` and empty strings mean "no impersonation" and return None.
    Anything else that is not in the catalogue raises UnknownIdentity;
    there is no nearest-version coercion.
    """
    if token is None or isinstance(token, Impersonate):
        return token
    key = str(token).strip().lower()
    if not key:
        return None
    try:
        return _IDENTITY_BY_TOKEN[key]
    except KeyError:
        raise UnknownIdentity(str(token)) from None


def resolve_os(token: "str | ImpersonateOS | None") -> ImpersonateOS | None:
    """Parse an OS token. ``None``/empty means unset."""
    if token is None or isinstance(token, ImpersonateOS):
        return token
    key = str(token).strip().lower()
    if not key:
        return None
    try:
        return _OS_BY_TOKEN[key]
    except KeyError:
        raise UnknownOS(str(token)) from None

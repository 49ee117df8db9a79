"""Upstream release indexes for each managed ecosystem."""
import asyncio
import json
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import aiohttp

from mcp_env_provisioner.errors import CatalogUnavailable
from mcp_env_provisioner.logging import get_logger

logger = get_logger(__name__)

FETCH_TIMEOUT = 30

# https://raw.githubusercontent.com/indygreg/python-build-standalone/latest-release/latest-release.json
PYTHON_BUILD_TAG = "20230507"
# NOTE: x86_64_v3 requires AVX2 CPU support
PYTHON_ASSET = re.compile(
    r"cpython-(\d+\.\d+\.\d+)\+\d+-x86_64_v3-unknown-linux-gnu-pgo\+lto-full\.tar\.zst"
)
RUBY_ASSET = re.compile(r'href="ruby-([.\d]+)\.tar\.bz2"')
ADOPTIUM_API = "https://api.adoptium.net/v3"

Releases = Dict[str, Optional[str]]


@dataclass(frozen=True)
class ReleaseSource:
    """Where to fetch an ecosystem's releases and how to read them"""
    ecosystem: str
    url: str
    parse: Callable[[str], Releases]
    seed: tuple[str, ...] = ()
    tag_prefix: str = ""


def parse_php_releases(text: str) -> Releases:
    data = json.loads(text)
    releases: Releases = {}
    for major in data.values():
        for version in major.get("supported_versions", []):
            releases[version] = None
    return releases


def parse_ruby_listing(text: str) -> Releases:
    return {m.group(1): None for m in RUBY_ASSET.finditer(text)}


def python_asset_url(filename: str, tag: str = PYTHON_BUILD_TAG) -> str:
    return f"https://github.com/indygreg/python-build-standalone/releases/download/{tag}/{filename}"


def make_python_parser(tag: str = PYTHON_BUILD_TAG) -> Callable[[str], Releases]:
    def parse_python_assets(text: str) -> Releases:
        releases: Releases = {}
        for match in PYTHON_ASSET.finditer(text):
            # First asset listed for a version wins
            releases.setdefault(match.group(1), python_asset_url(match.group(0), tag))
        return releases

    return parse_python_assets


def java_binary_url(feature: str) -> str:
    return f"{ADOPTIUM_API}/binary/latest/{feature}/ga/linux/x64/jdk/hotspot/normal/eclipse"


def parse_adoptium_releases(text: str) -> Releases:
    data = json.loads(text)
    return {str(feature): java_binary_url(str(feature)) for feature in data["available_releases"]}


def python_build_standalone(tag: str = PYTHON_BUILD_TAG) -> ReleaseSource:
    return ReleaseSource(
        ecosystem="python",
        url=f"https://github.com/indygreg/python-build-standalone/releases/expanded_assets/{tag}",
        parse=make_python_parser(tag),
    )


DEFAULT_SOURCES: Dict[str, ReleaseSource] = {
    # PHP <= 7.4 still holds a sizeable share of installs
    "php": ReleaseSource(
        ecosystem="php",
        url="https://www.php.net/releases/?json",
        parse=parse_php_releases,
        seed=("7.4",),
    ),
    # TODO: detect OS release and arch instead of pinning centos/9 x86_64
    "ruby": ReleaseSource(
        ecosystem="ruby",
        url="https://rvm.io/binaries/centos/9/x86_64/",
        parse=parse_ruby_listing,
        tag_prefix="ruby-",
    ),
    "python": python_build_standalone(),
    "java": ReleaseSource(
        ecosystem="java",
        url=f"{ADOPTIUM_API}/info/available_releases",
        parse=parse_adoptium_releases,
    ),
}


async def fetch_releases(source: ReleaseSource, session: aiohttp.ClientSession) -> Releases:
    """Download and parse one release index.

    Raises:
        CatalogUnavailable: on any network, HTTP or parse failure
    """
    logger.debug("catalog_fetch_start", ecosystem=source.ecosystem, url=source.url)
    try:
        async with session.get(
            source.url, timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT)
        ) as response:
            response.raise_for_status()
            text = await response.text()
        releases = source.parse(text)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise CatalogUnavailable(source.ecosystem, f"fetch failed: {e!r}") from e
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise CatalogUnavailable(source.ecosystem, f"unreadable index: {e!r}") from e

    if not releases:
        raise CatalogUnavailable(source.ecosystem, "index listed no releases")
    return releases

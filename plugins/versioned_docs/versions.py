"""
Map requested version identifiers onto concrete repository tags.

Requested identifiers are semantic-version ranges in the npm style ("1.2",
"^2.0.0", ">=1.0.0 <2.0.0", ...) or plain tag/branch names. Each range is
translated to one or more ``packaging`` specifier sets and matched against
the bare versions coerced from the repository's version tags; the highest
satisfying version wins. Identifiers that are not ranges are used verbatim.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from packaging.specifiers import SpecifierSet
from packaging.version import Version

from plugins.versioned_docs.exceptions import InvalidRangeError

log = logging.getLogger("mkdocs.plugins.versioned_docs")

CURRENT_VERSION_ID = "current"
CURRENT_REVISION = "HEAD"

SEMVER_SEGMENT = r"\d+(\.\d+){2}"
COERCE_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)$")

OPERATOR_SPACING = re.compile(r"(<=|>=|<|>|=|~>?|\^)\s+")
HYPHEN_RANGE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
COMPARATOR = re.compile(r"^(<=|>=|<|>|=|~>?|\^)?(.*)$")
PARTIAL = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$"
)

# Nothing satisfies this; used for "<*" and ">*".
NEVER = ["<0.0.0"]

Partial = Tuple[Optional[int], Optional[int], Optional[int]]


@dataclass
class ResolvedVersion:
    id: str
    tag: str
    is_current: bool
    semver_match: Optional[str] = None


def tag_patterns(repo_name: str = "") -> List[re.Pattern]:
    """Tag names that look like releases: ``v1.2.3``, ``1.2.3`` and ``<repo>@1.2.3``."""
    patterns = [re.compile(rf"^v?{SEMVER_SEGMENT}$")]
    if repo_name:
        # monorepo tags, e.g. lerna's "<package>@1.2.3"
        patterns.append(re.compile(rf"^{re.escape(repo_name)}@{SEMVER_SEGMENT}$"))
    return patterns


def coerce_version(tag: str) -> Optional[str]:
    """Return the bare ``X.Y.Z`` at the end of a tag name, without leading zeros."""
    match = COERCE_PATTERN.search(tag)
    if not match:
        return None
    return ".".join(str(int(part)) for part in match.groups())


def build_version_map(tags: Iterable[str], repo_name: str = "") -> Dict[str, str]:
    """
    Map bare versions to the release tags they came from.

    Tags are expected most-recent first, so the first tag seen for a bare
    version is kept and later duplicates are ignored.
    """
    patterns = tag_patterns(repo_name)
    version_map: Dict[str, str] = {}
    for tag in tags:
        if not any(pattern.match(tag) for pattern in patterns):
            continue
        version = coerce_version(tag)
        if version in version_map:
            log.debug(
                f"[versioned_docs] {tag} duplicates {version_map[version]} for {version}; keeping the first"
            )
            continue
        version_map[version] = tag
    return version_map


# ----- Range parsing -----


def _parse_partial(text: str) -> Partial:
    match = PARTIAL.match(text)
    if not match:
        raise InvalidRangeError(f"Invalid version: {text!r}")
    parts: List[Optional[int]] = []
    for group in match.groups():
        if group is None or group in ("x", "X", "*") or None in parts:
            parts.append(None)
        else:
            parts.append(int(group))
    return parts[0], parts[1], parts[2]


def _fmt(major: int, minor: Optional[int] = 0, patch: Optional[int] = 0) -> str:
    return f"{major}.{minor or 0}.{patch or 0}"


def _comparator_specs(operator: str, partial: Partial) -> List[str]:
    major, minor, patch = partial

    if operator in ("", "="):
        if major is None:
            return []
        if minor is None:
            return [f">={_fmt(major)}", f"<{_fmt(major + 1)}"]
        if patch is None:
            return [f">={_fmt(major, minor)}", f"<{_fmt(major, minor + 1)}"]
        return [f"=={_fmt(major, minor, patch)}"]

    if operator == ">":
        if major is None:
            return NEVER
        if minor is None:
            return [f">={_fmt(major + 1)}"]
        if patch is None:
            return [f">={_fmt(major, minor + 1)}"]
        return [f">{_fmt(major, minor, patch)}"]

    if operator == ">=":
        return [] if major is None else [f">={_fmt(major, minor, patch)}"]

    if operator == "<":
        return NEVER if major is None else [f"<{_fmt(major, minor, patch)}"]

    if operator == "<=":
        if major is None:
            return []
        if minor is None:
            return [f"<{_fmt(major + 1)}"]
        if patch is None:
            return [f"<{_fmt(major, minor + 1)}"]
        return [f"<={_fmt(major, minor, patch)}"]

    if operator in ("~", "~>"):
        if major is None:
            return []
        if minor is None:
            return [f">={_fmt(major)}", f"<{_fmt(major + 1)}"]
        return [f">={_fmt(major, minor, patch)}", f"<{_fmt(major, minor + 1)}"]

    # caret: allow changes that do not modify the left-most non-zero part
    if major is None:
        return []
    lower = f">={_fmt(major, minor, patch)}"
    if major > 0 or minor is None:
        return [lower, f"<{_fmt(major + 1)}"]
    if minor > 0 or patch is None:
        return [lower, f"<{_fmt(0, minor + 1)}"]
    return [lower, f"<{_fmt(0, 0, patch + 1)}"]


def parse_range(text: str) -> List[SpecifierSet]:
    """
    Translate an npm-style range into specifier sets, one per ``||`` alternative.

    Raises InvalidRangeError when the text is not a range, e.g. a branch name.
    """
    alternatives = []
    for alternative in text.split("||"):
        alternative = alternative.strip()
        specs: List[str] = []
        hyphen = HYPHEN_RANGE.match(alternative)
        if hyphen:
            specs += _comparator_specs(">=", _parse_partial(hyphen.group(1)))
            specs += _comparator_specs("<=", _parse_partial(hyphen.group(2)))
        else:
            for token in OPERATOR_SPACING.sub(r"\1", alternative).split():
                operator, version = COMPARATOR.match(token).groups()
                specs += _comparator_specs(operator or "", _parse_partial(version))
        alternatives.append(SpecifierSet(",".join(specs)))
    return alternatives


def match_version(identifier: str, candidates: Sequence[str]) -> Optional[str]:
    """Highest candidate satisfying ``identifier``, or None."""
    try:
        alternatives = parse_range(identifier)
    except InvalidRangeError:
        return None
    satisfying = [
        candidate
        for candidate in candidates
        if any(spec.contains(Version(candidate)) for spec in alternatives)
    ]
    return max(satisfying, key=Version, default=None)


def resolve_versions(
    requested: Optional[Sequence], tags: Iterable[str], repo_name: str = ""
) -> List[ResolvedVersion]:
    """
    Resolve every requested identifier to a tag, current (highest) first.

    With nothing requested only the working revision is built.
    """
    if not requested:
        return [ResolvedVersion(CURRENT_VERSION_ID, CURRENT_REVISION, True)]

    version_map = build_version_map(tags, repo_name)
    candidates = list(version_map)
    ordered = sorted((str(identifier) for identifier in requested), reverse=True)

    resolved = []
    for index, identifier in enumerate(ordered):
        semver_match = match_version(identifier, candidates)
        if semver_match:
            tag = version_map[semver_match]
        else:
            log.debug(f"[versioned_docs] no release tag matches {identifier}; using it as a tag")
            tag = identifier
        resolved.append(ResolvedVersion(identifier, tag, index == 0, semver_match))
    return resolved

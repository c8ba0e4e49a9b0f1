# catalog_ingest/communities.py
# community descriptor files: type guard, validation, summary, invite check
from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote, urlparse

import httpx
from pydantic import BaseModel, Field

from .store import write_json_atomic
from .workflow_logger import log_event

CHANNEL_TYPES = ("text", "voice", "forum")
INVITE_API = "https://discord.com/api/v9/invites/{code}"
USER_AGENT = "catalog-ingest invite validator/1.0"


class ChannelCounts(BaseModel):
    total: int = 0
    text: int = 0
    voice: int = 0
    forum: int = 0


class ProcessedCommunity(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    inviteUrl: Optional[str] = None
    hierarchy: Dict[str, Any] = Field(default_factory=dict)
    channelCounts: ChannelCounts
    coursesMentioned: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class CommunitiesMetadata(BaseModel):
    generatedAt: str
    totalCommunities: int
    totalChannels: int
    description: str = "Community summaries with channel counts, tags, and course mentions."


class ProcessedCommunities(BaseModel):
    metadata: CommunitiesMetadata
    communities: Dict[str, ProcessedCommunity] = Field(default_factory=dict)


class CommunityValidation(BaseModel):
    file: str
    isValid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class InviteCheck(BaseModel):
    file: str = ""
    inviteUrl: str = ""
    code: str = ""
    ok: bool = False
    status: int = 0
    guildId: Optional[str] = None
    error: Optional[str] = None


# ----------------------------
# Type guard + validation
# ----------------------------
def _is_channel(ch: Any) -> bool:
    return (
        isinstance(ch, dict)
        and isinstance(ch.get("id"), str)
        and isinstance(ch.get("name"), str)
        and isinstance(ch.get("communityId"), str)
        and ch.get("type") in CHANNEL_TYPES
    )


def is_community_file(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and isinstance(obj.get("id"), str)
        and isinstance(obj.get("name"), str)
        and isinstance(obj.get("hierarchy"), dict)
        and isinstance(obj.get("channels"), list)
        and all(_is_channel(ch) for ch in obj["channels"])
    )


def validate_community_file(data: Any, filename: str) -> CommunityValidation:
    result = CommunityValidation(file=filename)

    if not is_community_file(data):
        result.isValid = False
        result.errors.append("Missing required fields (id, name, hierarchy, channels) or invalid channel entries")
        if isinstance(data, dict) and isinstance(data.get("channels"), list):
            for i, ch in enumerate(data["channels"]):
                if not _is_channel(ch):
                    result.errors.append(f"channels[{i}] needs string id, name, communityId and type in {CHANNEL_TYPES}")

    if isinstance(data, dict) and isinstance(data.get("id"), str):
        expected = f"{data['id']}.json"
        if filename != expected:
            result.warnings.append(f"Filename should be {expected} to match community id")

        channels = data.get("channels")
        if isinstance(channels, list):
            mismatched = [ch for ch in channels if isinstance(ch, dict) and ch.get("communityId") != data["id"]]
            if mismatched:
                result.warnings.append(
                    f"{len(mismatched)} channel(s) have communityId not matching top-level id {data['id']}"
                )
    return result


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _raw_files(raw_dir: Path) -> List[Path]:
    raw_dir = Path(raw_dir)
    if not raw_dir.is_dir():
        return []
    return sorted(p for p in raw_dir.iterdir() if p.is_file() and p.suffix == ".json")


def validate_raw_dir(raw_dir: Path) -> List[CommunityValidation]:
    results: List[CommunityValidation] = []
    for path in _raw_files(raw_dir):
        try:
            res = validate_community_file(_load_json(path), path.name)
        except (OSError, ValueError) as e:
            res = CommunityValidation(file=path.name, isValid=False, errors=[f"Failed to parse JSON: {e}"])
        results.append(res)
        log_event(
            status="info" if res.isValid and not res.warnings else ("warn" if res.isValid else "error"),
            actor="communities",
            event="descriptor_validated",
            document=path.name,
            extra={"errors": res.errors, "warnings": res.warnings},
        )
    return results


# ----------------------------
# Summary
# ----------------------------
def summarize_community(data: Dict[str, Any]) -> ProcessedCommunity:
    counts = ChannelCounts(total=len(data["channels"]))
    tags = set()
    courses = set()
    for ch in data["channels"]:
        setattr(counts, ch["type"], getattr(counts, ch["type"]) + 1)
        tags.update(ch.get("tags") or [])
        courses.update(c.upper() for c in ch.get("courseRelevance") or [])

    return ProcessedCommunity(
        id=data["id"],
        name=data["name"],
        description=data.get("description"),
        inviteUrl=data.get("inviteUrl"),
        hierarchy=data["hierarchy"],
        channelCounts=counts,
        coursesMentioned=sorted(courses),
        tags=sorted(tags),
    )


def generate_processed_communities(raw_dir: Path, out_file: Path, indent: Optional[int] = 2) -> ProcessedCommunities:
    """Summarize every valid descriptor in `raw_dir`; invalid files are skipped."""
    communities: Dict[str, ProcessedCommunity] = {}
    skipped: List[str] = []
    total_channels = 0

    for path in _raw_files(raw_dir):
        try:
            data = _load_json(path)
        except (OSError, ValueError):
            skipped.append(path.name)
            continue
        if not is_community_file(data):
            skipped.append(path.name)
            continue
        summary = summarize_community(data)
        communities[summary.id] = summary
        total_channels += summary.channelCounts.total

    out = ProcessedCommunities(
        metadata=CommunitiesMetadata(
            generatedAt=datetime.now(timezone.utc).isoformat(),
            totalCommunities=len(communities),
            totalChannels=total_channels,
        ),
        communities=communities,
    )
    write_json_atomic(Path(out_file), out.model_dump(mode="json", exclude_none=True), indent)

    log_event(
        status="success" if not skipped else "warn",
        actor="communities",
        event="communities_processed",
        extra={"communities": len(communities), "channels": total_channels, "skipped": skipped},
    )
    return out


# ----------------------------
# Invite check (network)
# ----------------------------
def extract_invite_code(url: str) -> Optional[str]:
    """discord.gg/<code>, discord.com/invite/<code> or /invites/<code>; None otherwise."""
    try:
        u = urlparse(url.strip())
    except ValueError:
        return None
    parts = [p for p in u.path.split("/") if p]
    if u.hostname == "discord.gg" and parts:
        return parts[0]
    if u.hostname == "discord.com" and len(parts) >= 2 and parts[0] in ("invite", "invites"):
        return parts[1]
    return None


def check_invite(code: str, client: Optional[httpx.Client] = None, timeout: float = 10.0) -> InviteCheck:
    """Status check only: ok means the public invite endpoint answered 2xx."""
    own_client = client is None
    client = client or httpx.Client(timeout=timeout)
    result = InviteCheck(code=code)
    try:
        resp = client.get(
            INVITE_API.format(code=quote(code, safe="")),
            params={"with_counts": "true", "with_expiration": "true"},
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        result.status = resp.status_code
        if resp.is_success:
            result.ok = True
            guild = (resp.json() or {}).get("guild") or {}
            result.guildId = guild.get("id")
        else:
            result.error = f"HTTP {resp.status_code}"
    except (httpx.HTTPError, ValueError) as e:
        result.error = str(e) or type(e).__name__
    finally:
        if own_client:
            client.close()
    return result


def check_invites_in_dir(
    raw_dir: Path,
    client: Optional[httpx.Client] = None,
    pause_s: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> List[InviteCheck]:
    own_client = client is None
    client = client or httpx.Client(timeout=10.0)
    results: List[InviteCheck] = []
    try:
        for path in _raw_files(raw_dir):
            try:
                data = _load_json(path)
            except (OSError, ValueError):
                continue
            invite_url = data.get("inviteUrl") if isinstance(data, dict) else None
            if not isinstance(invite_url, str) or not invite_url.strip():
                continue

            code = extract_invite_code(invite_url)
            if not code:
                results.append(InviteCheck(file=path.name, inviteUrl=invite_url, error="Unrecognized invite URL format"))
                continue

            if results and pause_s > 0:
                sleep(pause_s)
            res = check_invite(code, client=client).model_copy(update={"file": path.name, "inviteUrl": invite_url})
            if res.ok and res.guildId and isinstance(data.get("id"), str) and res.guildId != data["id"]:
                log_event(
                    status="warn",
                    actor="communities",
                    event="invite_guild_mismatch",
                    document=path.name,
                    extra={"guild_id": res.guildId, "file_id": data["id"]},
                )
            log_event(
                status="info" if res.ok else "error",
                actor="communities",
                event="invite_checked",
                document=path.name,
                extra={"code": code, "status": res.status, "error": res.error},
            )
            results.append(res)
    finally:
        if own_client:
            client.close()
    return results

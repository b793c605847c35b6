"""Opens the next recurring issue when the current one is closed.

Two kinds recur every two weeks:

- release issues, titled ``Scheduled release for October 27th, 2017``;
- TSC meeting issues, titled ``TSC meeting 26-October-2017``. Meetings
  happen at 16:00 New York time and the issue lists the time in several
  timezones plus the current TSC roster.

Issues that were closed before (reopened, then closed again) do not recur.
"""

import asyncio
import re
from datetime import UTC, date, datetime, timedelta
from urllib.parse import quote_plus
from zoneinfo import ZoneInfo

from repo_custodian.engine.context import EventContext
from repo_custodian.exceptions import RepoCustodianError
from repo_custodian.models.domain import IssueRef
from repo_custodian.plugins.utils import label_names

RELEASE_LABEL = "release"
RELEASE_LABELS = ["release", "tsc agenda", "triage:no"]
TSC_MEETING_LABEL = "tsc meeting"
TSC_MEETING_LABELS = ["tsc meeting", "triage:no"]

CADENCE = timedelta(weeks=2)
MEETING_HOUR = 16
MEETING_ZONE = ZoneInfo("America/New_York")
MEETING_TIMEZONES = (
    ("Los Angeles", "America/Los_Angeles"),
    ("Chicago", "America/Chicago"),
    ("New York", "America/New_York"),
    ("Madrid", "Europe/Madrid"),
    ("Moscow", "Europe/Moscow"),
    ("Tokyo", "Asia/Tokyo"),
    ("Sydney", "Australia/Sydney"),
)

MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTH_ALTERNATION = "|".join(MONTHS)

RELEASE_TITLE = re.compile(rf"^Scheduled release for ({_MONTH_ALTERNATION}) (\d{{1,2}})(st|nd|rd|th), (\d{{4}})$")
TSC_MEETING_TITLE = re.compile(rf"^TSC meeting (\d{{2}})-({_MONTH_ALTERNATION})-(\d{{4}})$")


def ordinal(day: int) -> str:
    """``1`` -> ``1st``, ``12`` -> ``12th``, ``23`` -> ``23rd``."""
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def _build_date(year: str, month: str, day: str) -> date | None:
    try:
        return date(int(year), MONTHS.index(month) + 1, int(day))
    except ValueError:
        return None


# ----------------------------------------------------------------------
# Release issues
# ----------------------------------------------------------------------


def parse_release_title(title: str) -> date | None:
    match = RELEASE_TITLE.match(title)
    if match is None:
        return None
    month, day, suffix, year = match.groups()
    if ordinal(int(day)) != f"{day}{suffix}":
        return None
    return _build_date(year, month, day)


def _long_date(day: date) -> str:
    # English names regardless of the process locale, so titles stay parseable
    return f"{MONTHS[day.month - 1]} {ordinal(day.day)}, {day.year}"


def release_title(release_date: date) -> str:
    return f"Scheduled release for {_long_date(release_date)}"


def release_body(release_date: date) -> str:
    when = f"{WEEKDAYS[release_date.weekday()]}, {_long_date(release_date)}"
    return f"""The next scheduled release will occur on {when}.

## Release Day Checklist

- [ ] Remove the 'tsc agenda' label on this issue
- [ ] Review open pull requests and merge any that are ready
- [ ] Verify whether dependent packages need to be released first
- [ ] Start the release
- [ ] Update the release notes with a "Highlights" section for any noteworthy changes
- [ ] Make a release announcement
- [ ] Add a comment to this issue saying the release is out
- [ ] Add the 'patch release pending' label to this issue

## Two Days After Release Day Checklist

Typically Monday for regular releases; two days after patch releases.

- [ ] Check the issues list for any regression issues

## No Regressions Checklist

- [ ] Remove the 'patch release pending' label from this issue
- [ ] Close this issue

## Patch Release Checklist

- [ ] Resolve the regression by merging any necessary fixes
- [ ] Start the release
- [ ] Update the release notes
- [ ] Make a release announcement
- [ ] Add a comment to this issue saying the release is out
- [ ] Wait two days and repeat the Two Days After Release Day checklist
- [ ] Close this issue

## Followup

Please use this issue to document how the release went, any problems during the release, and anything the team might want to know about the release process. This issue should be closed after all patch releases have been completed (or there was no patch release needed)."""


# ----------------------------------------------------------------------
# TSC meeting issues
# ----------------------------------------------------------------------


def parse_meeting_title(title: str) -> datetime | None:
    """Meeting start for a TSC meeting title, 16:00 New York time."""
    match = TSC_MEETING_TITLE.match(title)
    if match is None:
        return None
    day, month, year = match.groups()
    meeting_day = _build_date(year, month, day)
    if meeting_day is None:
        return None
    return datetime(meeting_day.year, meeting_day.month, meeting_day.day, MEETING_HOUR, tzinfo=MEETING_ZONE)


def next_meeting(meeting: datetime) -> datetime:
    # Wall-clock arithmetic keeps 16:00 local across DST changes
    return meeting + CADENCE


def meeting_title(meeting: datetime) -> str:
    return f"TSC meeting {meeting.day:02d}-{MONTHS[meeting.month - 1]}-{meeting.year}"


def _format_time(moment: datetime) -> str:
    weekday = WEEKDAYS[moment.weekday()][:3]
    month = MONTHS[moment.month - 1][:3]
    return f"{weekday} {moment.day:02d}-{month}-{moment.year} {moment:%H:%M}"


def format_roster(members: list[tuple[str, str | None]]) -> str:
    return "\n".join(f"- {name or login} (@{login}) - TSC" for login, name in members)


def meeting_body(meeting: datetime, org: str, roster: str, location: str | None = None) -> str:
    local_times = "\n".join(
        f"- {city}: {_format_time(meeting.astimezone(ZoneInfo(zone)))}" for city, zone in MEETING_TIMEZONES
    )
    agenda_query = quote_plus(f'org:{org} label:"tsc agenda"')
    location_section = f"# Location\n\n{location}\n\n" if location else ""
    return f"""# Time

UTC {_format_time(meeting.astimezone(UTC))}:
{local_times}

{location_section}# Agenda

Extracted from:

* Issues and pull requests from the {org} organization with the ["tsc agenda" label](https://github.com/issues?q={agenda_query})
* Comments on this issue

# Invited

{roster}

# Public participation

Anyone is welcome to attend the meeting as observers. We ask that you refrain from interrupting the meeting once it begins and only participate if invited to do so."""


async def fetch_roster(ctx: EventContext, org: str, team_slug: str) -> list[tuple[str, str | None]]:
    """``(login, display name)`` for every member of ``team_slug``, in API order."""
    teams = await ctx.github.list_org_teams(org)
    if not any(team.get("slug") == team_slug for team in teams):
        raise RepoCustodianError(f"No team with slug {team_slug} found in {org}")

    members = await ctx.github.list_team_members(org, team_slug)
    users = await asyncio.gather(*(ctx.github.get_user(member["login"]) for member in members))
    return [(member["login"], user.get("name")) for member, user in zip(members, users, strict=True)]


# ----------------------------------------------------------------------
# Handlers
# ----------------------------------------------------------------------


async def _closed_before(ctx: EventContext, issue: IssueRef) -> bool:
    events = await ctx.github.list_issue_events(issue)
    return sum(1 for event in events if event.get("event") == "closed") > 1


async def recur_release(ctx: EventContext) -> None:
    closed = ctx.payload["issue"]
    if RELEASE_LABEL not in label_names(closed.get("labels")):
        return
    release_date = parse_release_title(closed.get("title") or "")
    if release_date is None:
        ctx.log.info("release_title_unparseable", title=closed.get("title"))
        return
    if await _closed_before(ctx, ctx.issue()):
        return

    next_date = release_date + CADENCE
    await ctx.github.create_issue(ctx.repo(), release_title(next_date), release_body(next_date), RELEASE_LABELS)


async def recur_tsc_meeting(ctx: EventContext) -> None:
    closed = ctx.payload["issue"]
    if TSC_MEETING_LABEL not in label_names(closed.get("labels")):
        return
    meeting = parse_meeting_title(closed.get("title") or "")
    if meeting is None:
        ctx.log.info("meeting_title_unparseable", title=closed.get("title"))
        return
    if await _closed_before(ctx, ctx.issue()):
        return

    repo = ctx.repo()
    plugins = ctx.settings.plugins
    upcoming = next_meeting(meeting)
    roster = format_roster(await fetch_roster(ctx, repo.owner, plugins.tsc_team_slug))
    body = meeting_body(upcoming, repo.owner, roster, plugins.tsc_meeting_location)
    await ctx.github.create_issue(repo, meeting_title(upcoming), body, TSC_MEETING_LABELS)

"""
OpenF1 results source

Resolves a race to an OpenF1 meeting with a best-effort name/country match,
then reads the final classified position of every car in the main race and,
when present, the sprint. fetch_results never raises: failures come back as
(False, message) so the reconciliation engine can mark just that race failed.
"""

import logging
import re
import time
from functools import wraps

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openf1.org/v1"

NAME_MATCH_WEIGHT = 5
OFFICIAL_NAME_MATCH_WEIGHT = 4
COUNTRY_MATCH_WEIGHT = 1


class DriverResult:
    """Final classification of one car; positions are None when not classified"""

    def __init__(self, car_number, race_position=None, sprint_position=None):
        self.car_number = car_number
        self.race_position = race_position
        self.sprint_position = sprint_position

    def _key(self):
        return (self.car_number, self.race_position, self.sprint_position)

    def __eq__(self, other):
        if not isinstance(other, DriverResult):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f"<DriverResult #{self.car_number} P{self.race_position} S{self.sprint_position}>"


class ResultsSourceError(Exception):
    pass


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                delay = base_delay * (backoff_factor**attempt)
                try:
                    response = func(self, *args, **kwargs)
                except requests.exceptions.RequestException as e:
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(delay)
                        continue
                    raise

                if response.status_code == 429:  # Too Many Requests
                    retry_after = response.headers.get("Retry-After")
                    wait = float(retry_after) if retry_after else delay
                    logger.warning(
                        f"Rate limited. Waiting {wait}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(wait)
                    continue
                if response.status_code >= 500:  # Server errors
                    logger.warning(
                        f"Server error {response.status_code}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    time.sleep(delay)
                    continue

                return response

            raise ResultsSourceError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


def normalize_text(value):
    """Lowercase, drop 'grand prix'/'gp' and every non-alphanumeric character"""
    text = (value or "").lower()
    text = re.sub(r"grand prix|gp", "", text)
    return re.sub(r"[^a-z0-9]", "", text)


def score_meeting(meeting, race_name, country_code):
    """Match score of an OpenF1 meeting against a race's name and country"""
    name = normalize_text(race_name)
    country = (country_code or "").upper()

    score = 0
    if name and name in normalize_text(meeting.get("meeting_name")):
        score += NAME_MATCH_WEIGHT
    if name and name in normalize_text(meeting.get("meeting_official_name")):
        score += OFFICIAL_NAME_MATCH_WEIGHT
    if country and (meeting.get("country_code") or "").upper() == country:
        score += COUNTRY_MATCH_WEIGHT
    return score


def select_meeting_key(meetings, race_name, country_code):
    """Key of the best scoring meeting, or None when nothing scores above 0"""
    best_key = None
    best_score = 0
    for meeting in meetings:
        score = score_meeting(meeting, race_name, country_code)
        if score > best_score:
            best_score = score
            best_key = meeting.get("meeting_key")
    return best_key if best_score > 0 else None


def find_race_session(sessions):
    for session in sessions:
        if session.get("session_type") == "Race" and session.get("session_name") != "Sprint":
            return session
    return None


def find_sprint_session(sessions):
    for session in sessions:
        if session.get("session_type") == "Sprint" or session.get("session_name") == "Sprint":
            return session
    return None


def final_positions(samples):
    """car number -> last known position from OpenF1 position samples"""
    positions = {}
    for sample in sorted(samples, key=lambda s: s.get("date") or ""):
        number = sample.get("driver_number")
        if number is None:
            continue
        positions[int(number)] = sample.get("position")
    return positions


def merge_positions(race_positions, sprint_positions):
    results = []
    for number, position in race_positions.items():
        sprint = sprint_positions.get(number)
        if position is not None or sprint is not None:
            results.append(DriverResult(number, position, sprint))

    for number, sprint in sprint_positions.items():
        if number in race_positions or sprint is None:
            continue
        results.append(DriverResult(number, None, sprint))

    return results


class OpenF1Client:
    """
    Fetches race classifications from the OpenF1 API with rate limiting and retries
    """

    def __init__(self, api_base_url=None, timeout=30, session=None):
        self.api_base_url = (api_base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "F1-Pickem-App/1.0"})

        # Rate limiting configuration
        self.last_request_time = 0
        self.min_request_interval = 0.35  # OpenF1 allows ~3 requests/second

    @classmethod
    def from_config(cls, config):
        return cls(
            api_base_url=config.get("OPENF1_API_BASE_URL"),
            timeout=config.get("OPENF1_REQUEST_TIMEOUT", 30),
        )

    def _enforce_rate_limit(self):
        """Enforce minimum interval between requests"""
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)
        self.last_request_time = time.time()

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, path, params=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        return self.session.get(
            f"{self.api_base_url}/{path}", params=params, timeout=self.timeout
        )

    def _get_json(self, path, params=None):
        response = self._make_api_request(path, params=params)
        if response.status_code >= 400:
            raise ResultsSourceError(f"OpenF1 API error: {response.status_code}")
        return response.json()

    def get_meetings(self, year):
        return self._get_json("meetings", {"year": year})

    def get_sessions(self, year, meeting_key):
        return self._get_json("sessions", {"year": year, "meeting_key": meeting_key})

    def get_final_positions(self, session_key):
        samples = self._get_json(
            "position", {"session_key": session_key, "position<": 20}
        )
        return final_positions(samples)

    def resolve_meeting_key(self, year, race_name, country_code):
        return select_meeting_key(self.get_meetings(year), race_name, country_code)

    def fetch_results(self, season_year, race_name, country_code):
        """Final positions for a race.

        Returns (True, [DriverResult, ...]) or (False, message).
        """
        try:
            meeting_key = self.resolve_meeting_key(season_year, race_name, country_code)
            if not meeting_key:
                return False, "OpenF1 meeting not found for race"

            sessions = self.get_sessions(season_year, meeting_key)
            race_session = find_race_session(sessions)
            if not race_session:
                return False, "Race session not found in OpenF1"

            race_positions = self.get_final_positions(race_session["session_key"])

            sprint_positions = {}
            sprint_session = find_sprint_session(sessions)
            if sprint_session:
                sprint_positions = self.get_final_positions(sprint_session["session_key"])

            results = merge_positions(race_positions, sprint_positions)
            logger.debug(
                f"OpenF1 meeting {meeting_key} for {race_name}: {len(results)} classified cars"
            )
            return True, results

        except (requests.exceptions.RequestException, ResultsSourceError, ValueError) as e:
            logger.warning(f"OpenF1 sync failed for {season_year} {race_name}: {e}")
            return False, f"OpenF1 sync failed: {e}"

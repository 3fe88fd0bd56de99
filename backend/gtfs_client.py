"""
Client for the GTFS-RT live feeds (trip updates / vehicle positions).

Feeds are served either as JSON or as GTFS-RT protobuf. Both are returned
as the same dict shape: {"header": {...}, "entity": [...]} with camelCase
keys (tripUpdate.trip.tripId, vehicle.position, ...).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from google.protobuf.json_format import MessageToDict
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from constants import HTTP_TIMEOUT

logger = logging.getLogger(__name__)


def _is_json_response(url: str, resp: requests.Response) -> bool:
    content_type = resp.headers.get("content-type", "")
    return "json" in content_type or url.split("?")[0].endswith(".json")


def decode_protobuf_feed(content: bytes) -> Dict[str, Any]:
    """GTFS-RT FeedMessage bytes -> dict in the JSON feed shape."""
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.ParseFromString(content)
    return MessageToDict(feed)


class GtfsClient:
    """Fetches GTFS-RT feeds. Failures are logged and returned as None."""

    def __init__(self, session: Optional[requests.Session] = None, timeout=HTTP_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_feed(self, url: str) -> Optional[Dict[str, Any]]:
        """
        Fetch and decode one feed.

        Args:
            url: GTFS-RT endpoint URL

        Returns:
            Feed dict, or None if the request failed, timed out, returned a
            non-2xx status, or could not be decoded.
        """
        try:
            logger.info("Fetching GTFS-RT from %s", url)
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            logger.info("Received %d bytes", len(resp.content))

            if _is_json_response(url, resp):
                feed = resp.json()
            else:
                feed = decode_protobuf_feed(resp.content)

        except requests.exceptions.Timeout:
            logger.error("GTFS-RT request timed out: %s", url)
            return None
        except requests.exceptions.HTTPError as e:
            logger.error("HTTP error %s from %s", e.response.status_code, url)
            return None
        except requests.exceptions.RequestException as e:
            logger.error("Request failed: %s", e)
            return None
        except (ValueError, DecodeError) as e:
            # ValueError covers JSON decode errors
            logger.error("Failed to decode GTFS-RT feed from %s: %s", url, e)
            return None

        if not isinstance(feed, dict):
            logger.error("Unexpected GTFS-RT payload type from %s: %s", url, type(feed).__name__)
            return None

        logger.info("Parsed %d entities", len(feed.get("entity") or []))
        return feed

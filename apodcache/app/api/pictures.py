"""Picture range endpoint."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from apodcache.app.api.dependencies import get_api_key, get_resolver, get_store
from apodcache.app.db.store import PictureStore
from apodcache.app.exceptions import InvalidRangeError
from apodcache.app.services.ranges import DateRange, parse_date
from apodcache.app.services.resolver import RangeResolver

router = APIRouter()


class PicturesParams(BaseModel):
    """Query params for the /pictures endpoint."""
    start_date: str
    end_date: str

    def parse_and_validate(self) -> DateRange:
        """Validate the GET request params.

        Raises:
            ParseError: If either date is not YYYY-MM-DD
            InvalidRangeError: If start_date is after end_date
        """
        start = parse_date(self.start_date, "start_date")
        end = parse_date(self.end_date, "end_date")
        if start > end:
            raise InvalidRangeError()
        return DateRange(start, end)


class PicturesResponse(BaseModel):
    urls: List[str]


@router.get("/pictures", response_model=PicturesResponse)
async def pictures(
    params: PicturesParams = Depends(),
    resolver: RangeResolver = Depends(get_resolver),
    store: PictureStore = Depends(get_store),
    api_key: str = Depends(get_api_key),
) -> PicturesResponse:
    """Retrieve picture urls from APOD within the specified date range.

    Served from the cache where possible; missing dates are fetched from
    NASA and cached before responding.
    """
    date_range = params.parse_and_validate()
    records = await resolver.resolve(store, date_range, api_key)
    return PicturesResponse(urls=[r.url for r in records])

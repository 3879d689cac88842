"""
Day-by-day view over a trip's generated log sheets.

Loading fans out one grid fetch per sheet concurrently. A failed fetch
leaves None in that sheet's slot; the sheet itself stays in the sequence.
"""
import asyncio
from typing import TYPE_CHECKING, Any, Optional

import structlog

from eld_client.errors import AssetFetchError, AuthExpired, ClientError
from eld_client.schemas import LogAsset, LogSheet
from eld_client.services.mapper import map_log_sheet

if TYPE_CHECKING:
    from eld_client.client import TripPlannerClient

logger = structlog.get_logger()


class LogPager:
    """Sequential index over the daily log sheets of one trip."""

    def __init__(self, client: "TripPlannerClient"):
        self.client = client
        self.trip_id: Optional[Any] = None
        self.sheets: list[LogSheet] = []
        self.assets: list[Optional[LogAsset]] = []
        self.current_day_index = 0

    def __len__(self) -> int:
        return len(self.sheets)

    @property
    def current_sheet(self) -> Optional[LogSheet]:
        if not self.sheets:
            return None
        return self.sheets[self.current_day_index]

    @property
    def current_asset(self) -> Optional[LogAsset]:
        if not self.assets:
            return None
        return self.assets[self.current_day_index]

    @property
    def is_first_day(self) -> bool:
        return self.current_day_index == 0

    @property
    def is_last_day(self) -> bool:
        return self.current_day_index >= len(self.sheets) - 1

    def previous_day(self) -> int:
        self.current_day_index = max(0, self.current_day_index - 1)
        return self.current_day_index

    def next_day(self) -> int:
        self.current_day_index = min(max(len(self.sheets) - 1, 0), self.current_day_index + 1)
        return self.current_day_index

    async def load(self, trip_id: Any) -> list[LogSheet]:
        """
        Generate (idempotent) and fetch the trip's log sheets, then fetch
        every sheet's grid image concurrently.
        """
        await self.client.generate_logs(trip_id)
        raw_logs = await self.client.list_logs()
        self.sheets = [
            map_log_sheet(raw) for raw in raw_logs
            if str(raw.get("trip")) == str(trip_id)
        ]
        self.trip_id = trip_id
        self.current_day_index = 0

        self.assets = list(await asyncio.gather(
            *(self._fetch_grid(sheet) for sheet in self.sheets)
        ))
        missing = sum(1 for asset in self.assets if asset is None)
        logger.info("logs_loaded", trip_id=trip_id, days=len(self.sheets), missing_assets=missing)
        return self.sheets

    async def _fetch_grid(self, sheet: LogSheet) -> Optional[LogAsset]:
        try:
            detail = await self.client.get_log(sheet.id)
            if not detail or not detail.get("id"):
                raise AssetFetchError(sheet.id, "log detail has no id")
            return await self.client.get_log_grid(detail["id"])
        except AuthExpired:
            raise
        except ClientError as e:
            error = e if isinstance(e, AssetFetchError) else AssetFetchError(sheet.id, str(e))
            logger.warning("log_grid_unavailable", log_id=sheet.id, reason=error.reason)
            return None

    async def download_pdf(self) -> LogAsset:
        """Fetch the PDF of the day currently displayed."""
        sheet = self.current_sheet
        if sheet is None:
            raise AssetFetchError(None, "no log sheet loaded")
        try:
            return await self.client.get_log_pdf(sheet.id)
        except AuthExpired:
            raise
        except ClientError as e:
            raise AssetFetchError(sheet.id, str(e)) from e

    @staticmethod
    def pdf_filename(sheet: LogSheet) -> str:
        return f"eld-log-{sheet.date or sheet.id}.pdf"

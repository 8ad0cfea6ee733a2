"""
WardMapView: the single owner of the active year dataset.

The view holds the selected year, the published dataset and everything
derived from it (shapes, viewport, style cache). Year changes tear down the
old refresh scheduler and clear all derived state before the new year loads.
Each scheduler is tagged with a generation number and results from an older
generation are dropped, so a superseded cycle can never overwrite the view.
"""

from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import folium
from loguru import logger

from ops import Config
from ops.refresh import RefreshScheduler
from processing.dataset import DatasetBuilder, YearDataset

from .bounds import Viewport
from .colors import StyleCache
from .interaction import DeviceProfile, ShapeRegistry, resolve_device
from .render import render_ward_map, save_map


class WardMapView:
    """Interactive ward map state for one viewer."""

    def __init__(
        self,
        config: Config,
        builder: Optional[DatasetBuilder] = None,
        on_publish: Optional[Callable[["WardMapView"], Any]] = None,
        on_error: Optional[Callable[["WardMapView", Exception], Any]] = None,
        device: Optional[DeviceProfile] = None,
        interval: Optional[float] = None,
    ):
        self.config = config
        self.builder = builder or DatasetBuilder(config)
        self.on_publish = on_publish
        self.on_error = on_error
        self.device = device if device is not None else resolve_device(config.get_map_setting("device"))
        self.interval = interval if interval is not None else config.get_refresh_interval()

        self.cache = StyleCache.from_config(config)
        self.registry = ShapeRegistry(config)
        self.viewport = Viewport(config.get_map_setting("center"), config.get_map_setting("zoom"))

        self.selected_year: Optional[str] = None
        self.dataset: Optional[YearDataset] = None
        self.last_error: Optional[Exception] = None
        self._scheduler: Optional[RefreshScheduler] = None
        self._generation = 0

    @property
    def tally(self) -> Dict[str, int]:
        return dict(self.dataset.tally) if self.dataset is not None else {}

    @property
    def scheduler(self) -> Optional[RefreshScheduler]:
        return self._scheduler

    def _reset(self, year: str) -> int:
        """Tear down the current year and start a new generation."""
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None
        self.cache.clear()
        self.registry.unmount()
        self.dataset = None
        self.last_error = None
        self.selected_year = year
        self._generation += 1
        return self._generation

    async def _cycle(self, year: str) -> YearDataset:
        self.cache.clear()
        return await self.builder.build(year)

    def select_year(self, year: Any) -> None:
        """
        Switch to a year and start refreshing it. Needs a running event loop.

        Re-selecting the year that is already refreshing is a no-op.
        """
        year = str(year)
        if year == self.selected_year and self._scheduler is not None and self._scheduler.running:
            return

        logger.info(f"🗓️ Selected year {year}")
        generation = self._reset(year)
        self._scheduler = RefreshScheduler(
            year,
            self._cycle,
            partial(self._publish_from, generation),
            interval=self.interval,
            on_error=partial(self._error_from, generation),
        )
        self._scheduler.start()

    def _publish_from(self, generation: int, dataset: YearDataset) -> bool:
        if generation != self._generation:
            logger.debug(f"🗑️ Dropping dataset from superseded generation {generation}")
            return False
        return self.publish(dataset)

    def _error_from(self, generation: int, error: Exception) -> None:
        if generation == self._generation:
            self.report_error(error)

    def publish(self, dataset: YearDataset) -> bool:
        """Swap in a fully built dataset and rebuild derived state."""
        if self.selected_year is not None and str(dataset.year) != self.selected_year:
            logger.warning(f"⚠️ Ignoring {dataset.year} dataset while {self.selected_year} is selected")
            return False

        registry = ShapeRegistry(self.config)
        registry.mount(dataset, self.cache, self.device or DeviceProfile.POINTER)

        self.dataset = dataset
        self.registry = registry
        self.selected_year = str(dataset.year)
        self.viewport.fit(dataset.bounding_set)
        self.last_error = None

        logger.info(f"📢 Published {dataset.year}: {dataset.ward_count} wards, {len(dataset.tally)} parties")
        if self.on_publish is not None:
            self.on_publish(self)
        return True

    def report_error(self, error: Exception) -> None:
        """Record a failed cycle; the previous dataset stays published."""
        self.last_error = error
        if self.dataset is not None:
            logger.warning(f"⚠️ Keeping {self.dataset.year} dataset from previous refresh")
        if self.on_error is not None:
            self.on_error(self, error)

    async def refresh_once(self, year: Any = None) -> YearDataset:
        """
        Run one cycle outside the scheduler and publish it.

        Raises:
            WardMapError: if the cycle fails
        """
        year = str(year or self.selected_year or self.config.get_default_year())
        if year != self.selected_year:
            self._reset(year)
        dataset = await self._cycle(year)
        self.publish(dataset)
        return dataset

    def render(self, output_path: Optional[Union[str, Path]] = None) -> folium.Map:
        """Render the current state, optionally saving it as HTML."""
        m = render_ward_map(
            self.dataset,
            self.viewport,
            self.cache,
            self.config,
            registry=self.registry,
            device=self.device,
            error=self.last_error,
        )
        if output_path is not None:
            save_map(m, output_path)
        return m

    def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()

    async def wait_idle(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.wait_idle()

"""
Image Association
=================

Pictures are opaque references resolved through the record service
(``GET /cars/image/{picture_id}``).  A resolution is written to a
temporary file and wrapped in an ``ImageHandle``; the file is the
renderable resource and is removed when the handle is released.

``ImageGallery`` keeps exactly one handle per displayed car:

* a car keeps its handle across refreshes while its picture reference is
  unchanged;
* a changed picture supersedes the old handle, which is released;
* cars that leave the visible set have their handle released.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from dealership.domain.entities import Car
from dealership.domain.exceptions import InventoryError

logger = logging.getLogger(__name__)


class ImageHandle:
    def __init__(self, picture_ref: str, path: Path, content_type: str):
        self.picture_ref = picture_ref
        self.path = path
        self.content_type = content_type
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.path.unlink(missing_ok=True)
        logger.debug("Released image %s (%s)", self.picture_ref, self.path)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.release()


class ImageResolver:
    def __init__(self, service, directory: Optional[Path] = None):
        self.service = service
        self.directory = directory

    async def resolve(self, picture_ref: str) -> ImageHandle:
        data, content_type = await self.service.fetch_image(picture_ref)
        suffix = mimetypes.guess_extension(content_type) or ""
        # picture_ref is opaque and never part of the file name
        fd, name = tempfile.mkstemp(
            prefix="car-image-", suffix=suffix, dir=self.directory
        )
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        return ImageHandle(picture_ref, Path(name), content_type)


class ImageGallery:
    """Scoped image handles for the cars currently on screen."""

    def __init__(self, resolver: ImageResolver):
        self.resolver = resolver
        self.handles: dict[str, ImageHandle] = {}
        self.failures: dict[str, str] = {}
        self._generation = 0

    def get(self, car_id: str) -> Optional[ImageHandle]:
        return self.handles.get(car_id)

    async def sync(self, cars: Iterable[Car]) -> None:
        """Match the handles to *cars*.

        A sync overtaken by a newer one while its pictures were loading
        releases what it resolved and leaves the handles to the newer one.
        """
        self._generation += 1
        generation = self._generation
        cars = list(cars)
        visible = {car.id for car in cars}

        for car_id in list(self.handles):
            if car_id not in visible:
                self.handles.pop(car_id).release()
        for car_id in list(self.failures):
            if car_id not in visible:
                del self.failures[car_id]

        pending = [
            car
            for car in cars
            if car.picture
            and (
                car.id not in self.handles
                or self.handles[car.id].picture_ref != car.picture
            )
        ]
        results = await asyncio.gather(
            *(self.resolver.resolve(car.picture) for car in pending),
            return_exceptions=True,
        )

        if generation != self._generation:
            for result in results:
                if isinstance(result, ImageHandle):
                    result.release()
            logger.debug("Dropping pictures of a superseded listing")
            return

        unexpected = None
        for car, result in zip(pending, results):
            previous = self.handles.pop(car.id, None)
            if previous is not None:
                previous.release()
            if isinstance(result, InventoryError):
                logger.warning(
                    "Could not load picture %s of car %s: %s",
                    car.picture,
                    car.id,
                    result,
                )
                self.failures[car.id] = str(result)
                continue
            if isinstance(result, BaseException):
                unexpected = unexpected or result
                continue
            self.failures.pop(car.id, None)
            self.handles[car.id] = result

        if unexpected is not None:
            raise unexpected

    def close(self) -> None:
        self._generation += 1
        for handle in self.handles.values():
            handle.release()
        self.handles.clear()
        self.failures.clear()

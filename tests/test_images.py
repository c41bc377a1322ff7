"""Tests for picture resolution and handle lifetime in ImageGallery."""

import asyncio
from dataclasses import replace
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from dealership.domain.entities import Car
from dealership.domain.enums import CarStatus
from dealership.domain.exceptions import TransportError
from dealership.services.images import ImageGallery, ImageHandle, ImageResolver
from dealership.services.inventory import InventoryView
from tests.conftest import PNG_BYTES


def _car(car_id: str, picture: str) -> Car:
    return Car(
        id=car_id,
        make="Mazda",
        model="3",
        year=2018,
        price=Decimal("9000"),
        picture=picture,
    )


@pytest.fixture
def service():
    mock = AsyncMock()
    mock.fetch_image.return_value = (PNG_BYTES, "image/png")
    return mock


@pytest.fixture
def gallery(service, tmp_path):
    return ImageGallery(ImageResolver(service, directory=tmp_path))


@pytest.mark.asyncio
async def test_resolved_picture_is_written_to_a_file(gallery, service, tmp_path):
    await gallery.sync([_car("a", "pic-a")])

    handle = gallery.get("a")
    assert handle.path.parent == tmp_path
    assert handle.path.suffix == ".png"
    assert handle.path.read_bytes() == PNG_BYTES
    assert handle.content_type == "image/png"
    service.fetch_image.assert_awaited_once_with("pic-a")


@pytest.mark.asyncio
async def test_unchanged_picture_is_resolved_once(gallery, service):
    cars = [_car("a", "pic-a"), _car("b", "pic-b")]
    await gallery.sync(cars)
    first = gallery.get("a")
    await gallery.sync(cars)

    assert gallery.get("a") is first
    assert service.fetch_image.await_count == 2


@pytest.mark.asyncio
async def test_changed_picture_supersedes_old_handle(gallery):
    car = _car("a", "pic-a")
    await gallery.sync([car])
    old = gallery.get("a")

    await gallery.sync([replace(car, picture="pic-a2")])
    new = gallery.get("a")

    assert old.released
    assert not old.path.exists()
    assert new.picture_ref == "pic-a2"
    assert new.path.exists()


@pytest.mark.asyncio
async def test_car_leaving_the_view_releases_its_handle(gallery):
    await gallery.sync([_car("a", "pic-a"), _car("b", "pic-b")])
    leaving = gallery.get("b")

    await gallery.sync([_car("a", "pic-a")])

    assert gallery.get("b") is None
    assert leaving.released
    assert not leaving.path.exists()
    assert not gallery.get("a").released


@pytest.mark.asyncio
async def test_failed_resolution_is_recorded_not_raised(gallery, service):
    service.fetch_image.side_effect = [
        (PNG_BYTES, "image/png"),
        TransportError("Picture not found", 404),
    ]
    await gallery.sync([_car("a", "pic-a"), _car("b", "pic-b")])

    assert gallery.get("a") is not None
    assert gallery.get("b") is None
    assert "Picture not found" in gallery.failures["b"]


@pytest.mark.asyncio
async def test_close_releases_everything(gallery):
    await gallery.sync([_car("a", "pic-a"), _car("b", "pic-b")])
    handles = list(gallery.handles.values())

    gallery.close()

    assert gallery.handles == {}
    assert all(h.released and not h.path.exists() for h in handles)


def test_release_is_idempotent(tmp_path):
    path = tmp_path / "car.png"
    path.write_bytes(PNG_BYTES)

    with ImageHandle("pic", path, "image/png") as handle:
        assert path.exists()
    assert not path.exists()
    handle.release()
    assert handle.released


@pytest.mark.asyncio
async def test_opaque_reference_stays_out_of_the_file_name(service, tmp_path):
    handle = await ImageResolver(service, directory=tmp_path).resolve("../../etc/pic")

    assert handle.path.parent == tmp_path
    assert ".." not in handle.path.name
    handle.release()


@pytest.mark.asyncio
async def test_pictures_of_a_superseded_listing_are_dropped(service, tmp_path):
    release_old = asyncio.Event()

    async def fetch_image(picture_ref):
        if picture_ref == "pic-old":
            await release_old.wait()
        return PNG_BYTES, "image/png"

    service.fetch_image.side_effect = fetch_image
    query = AsyncMock()
    query.list_by_status.side_effect = lambda status: (
        [_car("old", "pic-old")]
        if status is CarStatus.AVAILABLE
        else [_car("new", "pic-new")]
    )
    gallery = ImageGallery(ImageResolver(service, directory=tmp_path))
    view = InventoryView(query, gallery=gallery)

    first = asyncio.create_task(view.refresh())
    await asyncio.sleep(0)
    await view.show(CarStatus.SOLD)
    release_old.set()
    await first

    assert set(gallery.handles) == {"new"}
    assert [p.name for p in tmp_path.iterdir()] == [gallery.get("new").path.name]


@pytest.mark.asyncio
async def test_close_during_sync_leaves_nothing_behind(service, tmp_path):
    release = asyncio.Event()

    async def fetch_image(picture_ref):
        await release.wait()
        return PNG_BYTES, "image/png"

    service.fetch_image.side_effect = fetch_image
    gallery = ImageGallery(ImageResolver(service, directory=tmp_path))

    pending = asyncio.create_task(gallery.sync([_car("a", "pic-a")]))
    await asyncio.sleep(0)
    gallery.close()
    release.set()
    await pending

    assert gallery.handles == {}
    assert list(tmp_path.iterdir()) == []

"""Three-step submission wizards for complaints and recyclable pickups.

Steps are 1 details, 2 location, 3 review. ``next`` only advances when the
current step validates; ``back`` never validates. Validation problems are
collected in ``errors`` keyed by field name and are never raised. The whole
state round-trips through ``to_dict``/``from_dict`` so it can live in the
session between requests.
"""
import copy
import logging

from . import config, storage
from .schemas import PRIORITIES

logger = logging.getLogger(__name__)

DETAILS, LOCATION, REVIEW = 1, 2, 3
MIN_DESCRIPTION_LENGTH = 20


def parse_coordinates(value):
    """(lat, lng) floats, or None when unset, malformed or the (0, 0) sentinel."""
    if not isinstance(value, dict):
        return None
    try:
        lat = float(value.get("lat"))
        lng = float(value.get("lng"))
    except (TypeError, ValueError):
        return None
    if lat == 0 and lng == 0:
        return None
    return lat, lng


def _blank(value) -> bool:
    return not str(value or "").strip()


class Wizard:
    kind = None
    table = None
    bucket = None
    INITIAL: dict = {}

    def __init__(self, step: int = DETAILS, fields: dict | None = None, errors: dict | None = None):
        self.step = step
        self.fields = copy.deepcopy(self.INITIAL)
        for key, value in (fields or {}).items():
            if key in self.INITIAL:
                self.fields[key] = self._coerce(key, value)
        self.errors = dict(errors or {})

    # ── state ──

    def _coerce(self, key, value):
        # Form fields are text; coordinates stay a {lat, lng} mapping
        initial = self.INITIAL[key]
        if isinstance(initial, dict):
            return value if isinstance(value, dict) else copy.deepcopy(initial)
        return "" if value is None else str(value)

    def update(self, fields: dict | None = None, **kwargs):
        """Set known fields from a mapping and/or keyword arguments; unknown keys are ignored."""
        values = dict(fields or {}, **kwargs)
        for key, value in values.items():
            if key not in self.INITIAL:
                continue
            self.fields[key] = self._coerce(key, value)
            self.errors.pop(key, None)
        return values

    def reset(self):
        self.step = DETAILS
        self.fields = copy.deepcopy(self.INITIAL)
        self.errors = {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "step": self.step, "fields": self.fields, "errors": self.errors}

    @classmethod
    def from_dict(cls, data: dict | None):
        if not data:
            return cls()
        return cls(step=data.get("step", DETAILS), fields=data.get("fields"), errors=data.get("errors"))

    # ── navigation ──

    def validate_step(self, step: int) -> dict:
        raise NotImplementedError

    def validate_all(self) -> dict:
        errors = {}
        for step in (DETAILS, LOCATION):
            errors.update(self.validate_step(step))
        return errors

    def next(self) -> bool:
        self.errors = self.validate_step(self.step)
        if self.errors or self.step >= REVIEW:
            return False
        self.step += 1
        return True

    def back(self):
        self.errors = {}
        self.step = max(DETAILS, self.step - 1)

    # ── submission ──

    def record_data(self) -> dict:
        raise NotImplementedError

    def attach_image(self, data: dict, image) -> bool:
        raise NotImplementedError

    def _upload(self, image) -> str | None:
        filename, content = image
        return storage.upload_file(self.bucket, storage.unique_filename(filename), content)

    def submit(self, dal, image=None):
        """Insert the record; returns the stored row, or None with ``errors`` set.

        ``image`` is an optional ``(filename, bytes)`` pair. On success the
        wizard is reset to its initial state.
        """
        if self.step != REVIEW:
            self.errors = {"step": "Review your submission before sending it"}
            return None

        self.errors = self.validate_all()
        if self.errors:
            return None

        data = self.record_data()
        if not self.attach_image(data, image):
            return None

        row = dal.insert(self.table, data)
        if row is None:
            self.errors = {"form": "Your submission could not be saved. Please try again."}
            return None

        logger.info(f"{self.kind} {row['id']} submitted by {row.get('user_id')}")
        self.reset()
        return row


class ComplaintWizard(Wizard):
    kind = "complaint"
    table = "complaints"
    INITIAL = {
        "title": "",
        "description": "",
        "location": "",
        "priority": "",
        "area": "",
        "coordinates": {"lat": 0, "lng": 0},
    }

    @property
    def bucket(self):
        return config.COMPLAINT_BUCKET

    def validate_step(self, step: int) -> dict:
        f = self.fields
        errors = {}
        if step == DETAILS:
            if _blank(f["title"]):
                errors["title"] = "Title is required"
            if _blank(f["description"]):
                errors["description"] = "Description is required"
            elif len(f["description"].strip()) < MIN_DESCRIPTION_LENGTH:
                errors["description"] = f"Description should be at least {MIN_DESCRIPTION_LENGTH} characters"
            if f["priority"] not in PRIORITIES:
                errors["priority"] = "Priority is required"
            if _blank(f["area"]):
                errors["area"] = "Area is required"
        elif step == LOCATION:
            if _blank(f["location"]):
                errors["location"] = "Location description is required"
            if parse_coordinates(f["coordinates"]) is None:
                errors["coordinates"] = "Please select a location on the map"
        return errors

    def record_data(self) -> dict:
        f = self.fields
        lat, lng = parse_coordinates(f["coordinates"])
        return {
            "title": f["title"].strip(),
            "description": f["description"].strip(),
            "location": f["location"].strip(),
            "coordinates": {"lat": lat, "lng": lng},
            "area": f["area"].strip(),
            "priority": f["priority"],
            "status": "pending",
        }

    def attach_image(self, data: dict, image) -> bool:
        # A failed upload does not block the complaint
        if image is None:
            return True
        url = self._upload(image)
        if url:
            data["image_url"] = url
        else:
            logger.warning("Complaint image upload failed, saving complaint without image")
        return True


class RecyclableWizard(Wizard):
    kind = "recyclable"
    table = "recyclable_items"
    INITIAL = {
        "name": "",
        "description": "",
        "quantity": "",
        "location": "",
        "area": "",
        "coordinates": {"lat": 0, "lng": 0},
    }

    @property
    def bucket(self):
        return config.RECYCLABLE_BUCKET

    def update(self, fields: dict | None = None, **kwargs):
        values = super().update(fields, **kwargs)
        coords = parse_coordinates(self.fields["coordinates"])
        if "coordinates" in values and coords and _blank(self.fields["location"]):
            self.fields["location"] = f"Latitude: {coords[0]:.6f}, Longitude: {coords[1]:.6f}"

    def _quantity(self):
        raw = self.fields["quantity"]
        if _blank(raw):
            return 1.0
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    def validate_step(self, step: int) -> dict:
        f = self.fields
        errors = {}
        if step == DETAILS:
            if _blank(f["name"]):
                errors["name"] = "Please specify the type of recyclable item"
            if self._quantity() is None:
                errors["quantity"] = "Quantity must be a positive number"
            if _blank(f["area"]):
                errors["area"] = "Area is required"
        elif step == LOCATION:
            if parse_coordinates(f["coordinates"]) is None:
                errors["coordinates"] = "Please select a location on the map for pickup"
        return errors

    def record_data(self) -> dict:
        f = self.fields
        lat, lng = parse_coordinates(f["coordinates"])
        location = f["location"].strip() or f"Lat: {lat:.6f}, Lng: {lng:.6f}"
        return {
            "name": f["name"].strip(),
            "description": f["description"].strip() or "No description provided",
            "quantity": self._quantity(),
            "location": location,
            "coordinates": {"lat": lat, "lng": lng},
            "area": f["area"].strip(),
            "status": "pending",
        }

    def attach_image(self, data: dict, image) -> bool:
        # Pickup requests need a photo; a failed upload aborts the submission
        if image is None:
            self.errors = {"image": "Please add at least one image of the recyclable item"}
            return False
        url = self._upload(image)
        if not url:
            self.errors = {"image": "Image upload failed. Please try again."}
            return False
        data["image_url"] = url
        return True


WIZARDS = {
    ComplaintWizard.kind: ComplaintWizard,
    RecyclableWizard.kind: RecyclableWizard,
}

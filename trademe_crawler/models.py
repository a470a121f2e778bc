from dataclasses import dataclass, field


@dataclass
class Location:
    latitude: float
    longitude: float
    street: str = ""
    suburb: str = ""


@dataclass
class PropertyRecord:
    listing_id: str
    source_url: str
    title: str
    price: float
    location: Location
    description: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    images: set[str] = field(default_factory=set)

    @property
    def unique_key(self) -> str:
        return self.listing_id

    def to_dict(self) -> dict:
        return {
            "listing_id": self.listing_id,
            "source_url": self.source_url,
            "title": self.title,
            "price": self.price,
            "description": self.description,
            "attributes": dict(self.attributes),
            "images": sorted(self.images),
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
                "street": self.location.street,
                "suburb": self.location.suburb,
            },
        }

"""
Centralized settings and path configuration for order pricing.

Values are read from environment variables (optionally from a .env file).
"""
import os
from pathlib import Path
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value) if value else default


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Data files
    catalog_csv: Path
    orders_json: Path
    delivery_tiers_csv: Path

    # Shipment origin
    origin_city: str = "Tirupur"
    country: str = "India"
    country_code: str = "in"

    # Geocoding / routing providers
    opencage_api_key: str = ""
    opencage_url: str = "https://api.opencagedata.com/geocode/v1/json"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    osrm_url: str = "https://router.project-osrm.org/route/v1/driving"
    user_agent: str = "order-pricing/1.0"
    provider_timeout: float = 8.0

    # Distance and pricing constants
    road_factor: float = 1.4
    price_tolerance: Decimal = Decimal("0.01")
    use_static_size_multipliers: bool = False
    delivery_flat_charge: Optional[Decimal] = None

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment and project structure."""
        load_dotenv()
        root = project_root or get_project_root()
        package_dir = Path(__file__).resolve().parent.parent

        flat_charge = os.getenv('DELIVERY_FLAT_CHARGE')

        return cls(
            project_root=root,
            catalog_csv=_env_path('CATALOG_CSV', root / 'data' / 'catalog.csv'),
            orders_json=_env_path('ORDERS_JSON', root / 'data' / 'orders.json'),
            delivery_tiers_csv=_env_path(
                'DELIVERY_TIERS_CSV', package_dir / 'delivery' / 'delivery_tiers.csv'
            ),
            origin_city=os.getenv('ORIGIN_CITY', 'Tirupur'),
            country=os.getenv('DELIVERY_COUNTRY', 'India'),
            country_code=os.getenv('DELIVERY_COUNTRY_CODE', 'in'),
            opencage_api_key=os.getenv('OPENCAGE_API_KEY', ''),
            opencage_url=os.getenv('OPENCAGE_URL', cls.opencage_url),
            nominatim_url=os.getenv('NOMINATIM_URL', cls.nominatim_url),
            osrm_url=os.getenv('OSRM_URL', cls.osrm_url),
            user_agent=os.getenv('PROVIDER_USER_AGENT', cls.user_agent),
            provider_timeout=float(os.getenv('PROVIDER_TIMEOUT_SECONDS', '8')),
            road_factor=float(os.getenv('ROAD_FACTOR', '1.4')),
            price_tolerance=Decimal(os.getenv('PRICE_TOLERANCE', '0.01')),
            use_static_size_multipliers=_env_bool('USE_STATIC_SIZE_MULTIPLIERS', False),
            delivery_flat_charge=Decimal(flat_charge) if flat_charge else None,
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings

"""Dependency injection container for Dojo Invoicing.

Usage:
    from dojo_invoicing.container import get_container

    container = get_container()
    invoice = container.invoice_service.create_invoice(draft)
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from dojo_invoicing.config import Settings, get_settings
from dojo_invoicing.logging_config import get_logger

if TYPE_CHECKING:
    from dojo_invoicing.repositories.sqlite import (
        SQLiteDatabase,
        SQLiteInvoiceRepository,
        SQLiteTaxRateRepository,
    )
    from dojo_invoicing.services.invoicing import InvoiceServiceImpl
    from dojo_invoicing.services.tax_rates import TaxRateServiceImpl

logger = get_logger(__name__)


class Container:
    """Dependency injection container.

    Services are instantiated on first access and cached for reuse. Tests
    can pass their own settings:

        container = Container(settings=Settings(database_path=":memory:"))
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        logger.debug(
            "container_created",
            database_path=str(self._settings.database_path),
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> "SQLiteDatabase":
        """The SQLite database, schema created on first access."""
        from dojo_invoicing.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.database_path)
        logger.info("initializing_sqlite_database", path=db_path)

        db = SQLiteDatabase(db_path)
        db.initialize()
        return db

    @cached_property
    def tax_rate_repository(self) -> "SQLiteTaxRateRepository":
        from dojo_invoicing.repositories.sqlite import SQLiteTaxRateRepository

        return SQLiteTaxRateRepository(self.database)

    @cached_property
    def invoice_repository(self) -> "SQLiteInvoiceRepository":
        from dojo_invoicing.repositories.sqlite import SQLiteInvoiceRepository

        return SQLiteInvoiceRepository(self.database)

    @cached_property
    def tax_rate_service(self) -> "TaxRateServiceImpl":
        """Tax-rate administration and the active-rate snapshot."""
        from dojo_invoicing.services.tax_rates import TaxRateServiceImpl

        return TaxRateServiceImpl(
            self.tax_rate_repository,
            provincial_tax_names=self._settings.membership_exempt_tax_names,
            membership_item_types=self._settings.membership_item_types,
        )

    @cached_property
    def invoice_service(self) -> "InvoiceServiceImpl":
        """Invoice lifecycle service."""
        from dojo_invoicing.services.invoicing import InvoiceServiceImpl

        return InvoiceServiceImpl(
            self.invoice_repository,
            self.tax_rate_service,
            default_currency=self._settings.default_currency,
            default_payment_terms=self._settings.default_payment_terms,
            invoice_number_prefix=self._settings.invoice_number_prefix,
        )

    def close(self) -> None:
        """Close the database connection if one was opened."""
        if "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For testing, create a Container directly with custom settings instead.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Close and forget the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()

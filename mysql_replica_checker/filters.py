"""
Change event filters.

Filters are configured from the ``filters`` list of the settings file:

    filters:
      - type: delete-dml-column
        match_schema: test
        match_table: test_table
        columns: [e, f]

Each entry's ``type`` selects a filter class from ``FILTER_FACTORIES``.
"""

from dataclasses import dataclass
from logging import getLogger

from .config import Settings, stype
from .errors import ConfigurationError, MalformedEventError


logger = getLogger(__name__)


@dataclass
class ChangeEvent:
    db_name: str = ''
    table_name: str = ''
    # current row state, None only for malformed events
    data: dict = None
    # previous row state, update events only
    old: dict = None
    pks: dict = None

    @classmethod
    def from_dict(cls, data: dict) -> 'ChangeEvent':
        if not isinstance(data, dict):
            raise MalformedEventError(f'event should be an object and not {stype(data)}')
        event = cls(
            db_name=data.get('db_name', ''),
            table_name=data.get('table_name', ''),
            data=data.get('data'),
            old=data.get('old'),
            pks=data.get('pks'),
        )
        for name in ('data', 'old', 'pks'):
            value = getattr(event, name)
            if value is not None and not isinstance(value, dict):
                raise MalformedEventError(
                    f'event for {event.db_name}.{event.table_name}: "{name}" should be an object and not {stype(value)}'
                )
        return event

    def to_dict(self):
        result = {'db_name': self.db_name, 'table_name': self.table_name, 'data': self.data}
        if self.old is not None:
            result['old'] = self.old
        if self.pks is not None:
            result['pks'] = self.pks
        return result


class BaseFilter:
    name = ''

    def __init__(self):
        self.match_schema = '*'
        self.match_table = '*'

    def configure(self, data: dict):
        self.configure_matchers(data)

    def configure_matchers(self, data: dict):
        self.match_schema = data.pop('match_schema', '*')
        self.match_table = data.pop('match_table', '*')
        for pattern in (self.match_schema, self.match_table):
            if not isinstance(pattern, (str, list)):
                raise ConfigurationError(
                    f'{self.name}: match pattern should be string or list and not {stype(pattern)}'
                )

    def matches(self, event: ChangeEvent) -> bool:
        return (
            Settings.is_pattern_matches(event.db_name, self.match_schema)
            and Settings.is_pattern_matches(event.table_name, self.match_table)
        )

    def filter(self, event: ChangeEvent) -> bool:
        """Process the event in place, returns False to stop the pipeline."""
        raise NotImplementedError()


class DeleteDmlColumnFilter(BaseFilter):
    name = 'delete-dml-column'

    def __init__(self):
        super().__init__()
        self.columns: list[str] = []

    def configure(self, data):
        super().configure(data)
        if 'columns' not in data:
            raise ConfigurationError(f'{self.name}: "columns" is not configured')
        columns = data.pop('columns')
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise ConfigurationError(f'{self.name}: "columns" should be a list of strings')
        if not columns:
            raise ConfigurationError(f'{self.name}: "columns" should not be empty')
        self.columns = columns

    def filter(self, event):
        if not self.matches(event):
            return True

        if event.data is None:
            raise MalformedEventError(
                f'{self.name}: event for {event.db_name}.{event.table_name} has no row data'
            )

        for name in self.columns:
            event.data.pop(name, None)
            if event.old is not None:
                event.old.pop(name, None)
            if event.pks is not None:
                event.pks.pop(name, None)
        return True


FILTER_FACTORIES = {
    DeleteDmlColumnFilter.name: DeleteDmlColumnFilter,
}


def create_filter(config: dict) -> BaseFilter:
    if not isinstance(config, dict):
        raise ConfigurationError(f'filter config should be dict and not {stype(config)}')
    data = dict(config)
    filter_type = data.pop('type', None)
    factory = FILTER_FACTORIES.get(filter_type)
    if factory is None:
        raise ConfigurationError(
            f'unknown filter type {filter_type!r}, expected one of {sorted(FILTER_FACTORIES)}'
        )
    new_filter = factory()
    new_filter.configure(data)
    if data:
        raise ConfigurationError(f'Unsupported {filter_type} options: {list(data.keys())}')
    return new_filter


def create_filters(configs: list[dict]) -> list[BaseFilter]:
    return [create_filter(config) for config in configs]


class FilterPipeline:
    def __init__(self, filters: list[BaseFilter]):
        self.filters = filters

    @classmethod
    def from_config(cls, configs: list[dict]) -> 'FilterPipeline':
        return cls(create_filters(configs))

    def process(self, event: ChangeEvent) -> bool:
        """Run the event through every filter, False means it was dropped."""
        for event_filter in self.filters:
            if not event_filter.filter(event):
                logger.debug(f'event dropped by {event_filter.name}')
                return False
        return True

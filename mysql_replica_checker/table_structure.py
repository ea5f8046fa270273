from dataclasses import dataclass, field


@dataclass
class TableField:
    name: str = ''
    field_type: str = ''
    parameters: str = ''

    def definition(self):
        return ' '.join(p for p in (f'`{self.name}`', self.field_type, self.parameters) if p)


@dataclass
class TableStructure:
    fields: list = field(default_factory=list)
    primary_keys: list[str] = field(default_factory=list)
    table_name: str = ''
    charset: str = 'utf8mb4'
    engine: str = 'InnoDB'

    def field_names(self):
        return [f.name for f in self.fields]

    def non_key_fields(self):
        return [f for f in self.fields if f.name not in self.primary_keys]

    def create_statement(self, db_name, if_not_exists=True):
        definitions = [f.definition() for f in self.fields]
        if self.primary_keys:
            keys = ', '.join(f'`{key}`' for key in self.primary_keys)
            definitions.append(f'PRIMARY KEY ({keys})')
        body = ',\n'.join(definitions)
        if_not_exists = 'IF NOT EXISTS ' if if_not_exists else ''
        return (
            f'CREATE TABLE {if_not_exists}`{db_name}`.`{self.table_name}` (\n{body}\n)'
            f'ENGINE={self.engine} DEFAULT CHARSET={self.charset}'
        )

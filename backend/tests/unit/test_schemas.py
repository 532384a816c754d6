import pytest
from pydantic import ValidationError

from playground_store.schemas.project import ProjectCreate, ProjectFileCreate, ProjectMetadata


@pytest.mark.parametrize("schema", [ProjectCreate, ProjectFileCreate, ProjectMetadata])
def test_input_schemas_reject_unknown_fields(schema):
    with pytest.raises(ValidationError):
        schema(name="P", owner="mallory")


def test_project_metadata_defaults():
    metadata = ProjectMetadata(name="P")

    assert metadata.args == ""
    assert metadata.run_configuration == "java"

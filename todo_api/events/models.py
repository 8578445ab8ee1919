from pydantic import BaseModel, ConfigDict, Field


class TaskStatusChangedEvent(BaseModel):
    """Wire shape: {"TaskId": 5, "NewStatus": "completed"}."""

    task_id: int = Field(alias="TaskId")
    new_status: str = Field(alias="NewStatus")

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

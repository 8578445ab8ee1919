"""
Protobuf messages for ``protos/todo_analytics.proto``.

The classes are built from a descriptor at import time so the service runs
without a protoc step. Keep this file and the .proto in step.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "todo"
SERVICE_NAME = f"{PACKAGE}.TodoAnalytics"

_Field = descriptor_pb2.FieldDescriptorProto


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="todo_analytics.proto", package=PACKAGE, syntax="proto3"
    )

    file_proto.message_type.add(name="StatsRequest")

    response = file_proto.message_type.add(name="StatsResponse")
    response.field.add(
        name="active_tasks",
        json_name="activeTasks",
        number=1,
        type=_Field.TYPE_INT32,
        label=_Field.LABEL_OPTIONAL,
    )
    response.field.add(
        name="completed_tasks",
        json_name="completedTasks",
        number=2,
        type=_Field.TYPE_INT32,
        label=_Field.LABEL_OPTIONAL,
    )

    service = file_proto.service.add(name="TodoAnalytics")
    service.method.add(
        name="GetStats",
        input_type=f".{PACKAGE}.StatsRequest",
        output_type=f".{PACKAGE}.StatsResponse",
    )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())

StatsRequest = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.StatsRequest")
)
StatsResponse = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.StatsResponse")
)

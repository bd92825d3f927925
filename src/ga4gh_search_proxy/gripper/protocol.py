"""
Messages, client stub and servicer registration for ``gripper.GRIPSource``.

``gripper.proto`` next to this module is compiled on import with
:func:`grpc.protos_and_services` (backed by ``grpcio-tools``), and the names
of the resulting ``gripper_pb2`` / ``gripper_pb2_grpc`` pair are re-exported
here.
"""

from __future__ import annotations

from typing import Any, Mapping

import grpc
from google.protobuf import struct_pb2

PROTO_PATH = "ga4gh_search_proxy/gripper/gripper.proto"

gripper_pb2, gripper_pb2_grpc = grpc.protos_and_services(PROTO_PATH)

Empty = gripper_pb2.Empty
Collection = gripper_pb2.Collection
CollectionInfo = gripper_pb2.CollectionInfo
RowID = gripper_pb2.RowID
RowRequest = gripper_pb2.RowRequest
FieldRequest = gripper_pb2.FieldRequest
Row = gripper_pb2.Row

GRIPSourceStub = gripper_pb2_grpc.GRIPSourceStub
GRIPSourceServicer = gripper_pb2_grpc.GRIPSourceServicer
add_GRIPSourceServicer_to_server = gripper_pb2_grpc.add_GRIPSourceServicer_to_server


def to_struct(record: Mapping[str, Any]) -> struct_pb2.Struct:
    """Convert a decoded JSON object into a ``google.protobuf.Struct``."""

    data = struct_pb2.Struct()
    data.update(record)
    return data

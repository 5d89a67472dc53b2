"""Pytest bootstrap configuration.

Environment defaults must be in place before application settings are
imported by any test module.
"""
import os

import pytest

# Never shell out to a real grpcurl binary from the app under test
os.environ.setdefault("TRANSPORT__PROVIDER", "inmemory")
os.environ.setdefault("DEBUG", "true")


GREETER_PROTO = """
syntax = "proto3";

package demo.v1;

service Greeter {
  rpc SayHello (HelloRequest) returns (HelloReply);
  rpc LotsOfReplies (HelloRequest) returns (stream HelloReply);
  rpc LotsOfGreetings (stream HelloRequest) returns (HelloReply);
  rpc BidiHello (stream HelloRequest) returns (stream HelloReply);
}

message HelloRequest {
  string name = 1;
  int32 times = 2;
  repeated string tags = 3;
  Address address = 4;
  bytes avatar = 5;
  bool polite = 6;
  double score = 7;
}

message Address {
  string city = 1;
  uint64 zip = 2;
}

message HelloReply {
  string message = 1;
}
"""


@pytest.fixture
def greeter_proto() -> str:
    return GREETER_PROTO

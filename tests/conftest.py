"""Shared fixtures: a small FreeSWITCH log covering one queued, bridged call."""

import pytest

INBOUND_LEG = "ba75b4f2-1c2d-4e5f-8a9b-0c1d2e3f4a5b"
AGENT_LEG = "c0ffee00-1111-4222-8333-944455556666"


@pytest.fixture
def inbound_leg():
    return INBOUND_LEG


@pytest.fixture
def agent_leg():
    return AGENT_LEG


@pytest.fixture
def call_log_lines():
    """Inbound invite, queue join, bridge to the agent leg, agent-leg hangup."""
    return [
        f"{INBOUND_LEG} 2025-10-23 17:27:09.100000 [NOTICE] switch_channel.c:1118 "
        f"New Channel sofia/external/15849466429@10.101.1.131:5081 [{INBOUND_LEG}]",
        f"{INBOUND_LEG} 2025-10-23 17:27:10.000000 [INFO] mod_callcenter.c:3112 "
        f'Member "15849466429" joining queue sales@default',
        f"{INBOUND_LEG} 2025-10-23 17:27:12.000000 [NOTICE] switch_ivr_bridge.c:1000 "
        f"Bridge sofia/external/15849466429@10.101.1.131 to "
        f"sofia/internal/1007@10.37.200.4 uuid {AGENT_LEG}",
        f"{AGENT_LEG} 2025-10-23 17:27:20.000000 [NOTICE] switch_core_state_machine.c:600 "
        f"Hangup sofia/internal/1007@10.37.200.4 [CS_EXCHANGE_MEDIA] cause: NORMAL_CLEARING",
    ]


@pytest.fixture
def call_log_file(tmp_path, call_log_lines):
    """The sample call log written to disk."""
    path = tmp_path / "freeswitch.log"
    path.write_text("\n".join(call_log_lines) + "\n", encoding="utf-8")
    return path

"""
Command line host.

    python -m ultramesh listen --duration 60
    python -m ultramesh scan
    python -m ultramesh send 1A2B "hello"
    python -m ultramesh handshake 1A2B --yes
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import NodeConfig, load_config
from .engine import HostCallbacks
from .errors import AudioDeviceError, ChannelBusy, FrameTooLong, NoSession
from .logsink import configure_logging, std_logger
from .node import Node
from .protocol import InboundMessage, Security
from .transport import SoundDeviceChannel

log = logging.getLogger("ultramesh.cli")

_TAGS = {
    Security.SECURE: "SECURE",
    Security.OPEN: "OPEN",
    Security.UNENCRYPTED: "UNENCRYPTED",
    Security.DECRYPT_ERROR: "ERROR",
}


def _print_message(message: InboundMessage) -> None:
    print(f"[{_TAGS[message.security]}] {message.sender} -> {message.target}: {message.text}", flush=True)


def _ask(prompt: str) -> bool:
    try:
        return input(f"{prompt} [y/N] ").strip().lower() in ("y", "yes")
    except EOFError:
        return False


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ultramesh", description="Near-ultrasonic acoustic mesh messenger")
    p.add_argument("--config", help="YAML node configuration")
    p.add_argument("--id", dest="device_id", help="fixed 4-hex-digit device id")
    p.add_argument("--duration", type=float, default=30.0, help="seconds to keep listening afterwards")
    p.add_argument("--input-device", type=int, default=None)
    p.add_argument("--output-device", type=int, default=None)
    p.add_argument("--log-level", default=None)

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("listen", help="receive and answer discovery/handshakes")
    sub.add_parser("scan", help="broadcast a discovery probe")
    send = sub.add_parser("send", help="send a text message")
    send.add_argument("target")
    send.add_argument("text")
    hs = sub.add_parser("handshake", help="request a secure session")
    hs.add_argument("peer")
    hs.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = load_config(args.config) if args.config else NodeConfig()
    configure_logging(args.log_level or config.log_level)

    callbacks = HostCallbacks(
        on_log=std_logger("ultramesh"),
        on_message=_print_message,
        on_event=lambda event_type, details: print(f"* {event_type} {details}", flush=True),
        confirm=None if getattr(args, "yes", False) else _ask,
    )
    channel = SoundDeviceChannel(
        sample_rate_hz=config.modem.sample_rate_hz,
        input_device=args.input_device,
        output_device=args.output_device,
        logger=callbacks.on_log,
    )

    try:
        node = Node(channel, config=config, callbacks=callbacks, device_id=args.device_id)
        print(f"Device id: {node.device_id}", flush=True)
        if not node.start():
            log.error("receiver inactive; check the microphone and retry")
            return 2

        if args.command == "scan":
            node.scan()
        elif args.command == "send":
            node.send_message(args.target, args.text)
        elif args.command == "handshake":
            node.initiate_handshake(args.peer)

        node.run_forever(duration=args.duration)
    except (ChannelBusy, NoSession, FrameTooLong) as exc:
        log.error("%s", exc)
        return 1
    except AudioDeviceError as exc:
        log.error("audio device: %s", exc)
        return 2
    except KeyboardInterrupt:
        pass
    finally:
        channel.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

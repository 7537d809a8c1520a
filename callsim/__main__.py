#!/usr/bin/env python3
"""
Main entry point for the call simulator.
Allows running the package with: python -m callsim <command>

Commands:
    simulate [--script=PATH] [--context=PATH] [--mood=MOOD] [--max-turns=N] [--voice]
    audit <conversation.json> [call-script.txt] [--strict]
    voices
"""
import sys
import json
from typing import List, Optional

from .config import get_config, AVAILABLE_VOICES
from .errors import SimulationError
from .utils import setup_logging
from .infrastructure import VertexChatClient, SpeechGateway, ConversationRecorder
from .simulation import ConversationService, PersonaConfig, VoiceConfig, TurnResult, Role, Mood
from .simulation.audit import audit_transcript_file

USAGE = __doc__.split("Commands:", 1)[1].rstrip()


def option(args: List[str], name: str, default: Optional[str] = None) -> Optional[str]:
    """Value of a --name=value argument, or the default."""
    prefix = f"--{name}="
    for arg in args:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return default


def positionals(args: List[str]) -> List[str]:
    return [arg for arg in args if not arg.startswith("--")]


def print_turn(result: TurnResult) -> None:
    speaker = "🩺 Ava" if result.speaker is Role.ASSISTANT else "🙂 Patient"
    print(f"{speaker}: {result.text}")
    if result.audio:
        print(f"   🔊 {len(result.audio)} bytes of audio")


def simulate(args: List[str]) -> int:
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        return 1

    script_path = option(args, "script", config.call_script_path)
    context_path = option(args, "context", config.patient_context_path)
    mood = option(args, "mood", config.patient_mood)
    use_voice = "--voice" in args or config.enable_voice

    try:
        max_turns = int(option(args, "max-turns", str(config.max_turns)))
    except ValueError:
        print("❌ Invalid max turns value. Use --max-turns=N with N >= 1")
        return 1
    if max_turns < 1:
        print("❌ Invalid max turns value. Use --max-turns=N with N >= 1")
        return 1

    if Mood.parse(mood).value != (mood or "").strip().lower():
        print(f"⚠️  Unknown mood {mood!r}, using cooperative")

    log_path = setup_logging(config.log_file, config.log_level)

    llm_client = VertexChatClient(
        project=config.google_cloud_project,
        location=config.vertex_location,
        model=config.model_name,
        credentials_json=config.google_application_credentials,
    )
    speech_gateway = SpeechGateway(language_code=config.language_code) if use_voice else None
    voice_config = VoiceConfig(config.assistant_voice, config.patient_voice) if use_voice else None

    service = ConversationService(
        llm_client,
        speech_gateway=speech_gateway,
        recorder=ConversationRecorder(config.conversations_dir),
    )

    print(f"📞 Simulating call (mood: {Mood.parse(mood).value}, max turns: {max_turns}, "
          f"{'voice' if use_voice else 'text'} mode)")
    print(f"   Script: {script_path}")
    print(f"   Patient context: {context_path}")
    print()

    try:
        opening = service.start_conversation(
            script_path,
            persona=PersonaConfig(mood_key=mood),
            max_turns=max_turns,
            background_ref=context_path,
            voice_config=voice_config,
        )
        print_turn(opening)
        if opening.is_active:
            service.run_conversation(on_turn=print_turn)
    except OSError as e:
        print(f"❌ Could not read call script: {e}")
        return 1
    except SimulationError as e:
        service.stop_conversation()
        print(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        service.stop_conversation()
        print("\n⏹️  Call stopped")

    state = service.conversation_state()
    print()
    print(f"✅ Call ended ({state.stop_reason}) after {state.turn_count} exchange(s), "
          f"{state.total_messages} messages")
    if state.record_path:
        print(f"💾 Transcript: {state.record_path}")
    print(f"📝 Log: {log_path}")
    return 0


def audit_command(args: List[str]) -> int:
    paths = positionals(args)
    if not paths:
        print("❌ Usage: python -m callsim audit <conversation.json> [call-script.txt] [--strict]")
        return 1

    conversation_path = paths[0]
    script_path = paths[1] if len(paths) > 1 else None

    try:
        result, used_script = audit_transcript_file(conversation_path, script_path, strict="--strict" in args)
    except (OSError, ValueError, SimulationError) as e:
        print(f"❌ Audit failed: {e}")
        return 1

    report = dict(result.to_dict(), conversationFile=conversation_path, callScriptFile=used_script)
    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


def list_voices() -> int:
    for voice in AVAILABLE_VOICES:
        default = f" (default {voice['default']})" if voice.get("default") else ""
        print(f"{voice['id']:<18} {voice['gender']:<7} {voice['accent']}{default}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface for the call simulator."""
    args = list(sys.argv[1:] if argv is None else argv)
    command = args.pop(0) if args and not args[0].startswith("--") else "simulate"

    if command == "simulate":
        return simulate(args)
    if command == "audit":
        return audit_command(args)
    if command == "voices":
        return list_voices()

    print(f"❌ Unknown command: {command}")
    print(f"Usage:{USAGE}")
    return 1


if __name__ == "__main__":
    sys.exit(main())

import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from sbos_assistant.app_config import load_json_config, parse_app_config, resolve_runtime_env
from sbos_assistant.bootstrap import bootstrap_runtime


async def main() -> None:
    load_dotenv()

    try:
        app = parse_app_config(load_json_config())
    except (ValueError, OSError) as ex:
        print(f"Invalid configuration: {ex}", file=sys.stderr)
        sys.exit(1)

    env = resolve_runtime_env(app.provider_name)
    runtime = bootstrap_runtime(app, env)

    print("sbos-assistant (type 'exit' to quit, '/help' for commands)")
    print(f"Provider: {app.provider_name} | Model: {app.model} | User: {app.user_id}")
    print(f"Tools: {len(runtime.tool_names)} ({', '.join(runtime.tool_names[:6])}, ...)")
    if not runtime.service.available:
        print(f"Warning: {env.provider_env_var} is not set; messages will be rejected until it is configured.")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    try:
        while True:
            try:
                user_input = await asyncio.to_thread(input, "you> ")
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()

            if trimmed in ("exit", "quit"):
                break

            if not trimmed:
                continue

            try:
                await runtime.assistant.run(trimmed)
                print()
            except Exception as ex:
                logger.exception(f"Unhandled error: {ex}")
                print(f"assistant> Something went wrong: {ex}")
    finally:
        runtime.close()
        await logger.complete()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

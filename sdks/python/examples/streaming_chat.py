#!/usr/bin/env python3
"""
Streaming chat example using the mistralex SDK.

Shows the iterator form and the callback form of streaming.
"""

from mistralex import Mistral
from mistralex.stream import extract_content


def main():
    client = Mistral()

    print("Streaming Chat Example")
    print("=" * 50)
    print("Question: Tell me a short story about a robot.\n")
    print("Response: ", end="", flush=True)

    stream = client.chat.completions.create(
        model="mistral-small-latest",
        messages=[{"role": "user", "content": "Tell me a short story about a robot."}],
        stream=True,
        max_tokens=200,
    )

    for chunk in stream:
        if chunk.choices and chunk.choices[0].delta.content:
            print(chunk.choices[0].delta.content, end="", flush=True)

    print("\n")

    # Callback form: chunks arrive as dicts, the call returns an outcome
    print("Callback form: ", end="", flush=True)
    outcome = client.execute_streaming(
        "POST",
        "/chat/completions",
        {
            "model": "mistral-small-latest",
            "messages": [{"role": "user", "content": "Count to five."}],
            "stream": True,
        },
        lambda chunk: print(extract_content(chunk) or "", end="", flush=True),
    )
    print(f"\n\nChunks received: {outcome.chunks}" if outcome.ok else f"\nStream failed: {outcome.error}")

    client.close()


if __name__ == "__main__":
    main()

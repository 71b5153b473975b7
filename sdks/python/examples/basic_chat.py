#!/usr/bin/env python3
"""
Basic chat example using the mistralex SDK.

Reads the API key from MISTRAL_API_KEY.
"""

from mistralex import Mistral


def main():
    with Mistral() as client:
        print("Basic Chat Example")
        print("=" * 50)

        response = client.chat.completions.create(
            model="mistral-small-latest",
            messages=[
                {"role": "system", "content": "You are a helpful assistant."},
                {"role": "user", "content": "What is machine learning in one sentence?"},
            ],
            temperature=0.7,
            max_tokens=100,
        )

        print(f"Response: {response.choices[0].message.content}")
        print(f"\nTokens used: {response.usage.total_tokens if response.usage else 'N/A'}")

        # The non-raising form returns an outcome instead
        outcome = client.execute("GET", "/models")
        if outcome.ok:
            print(f"\n{len(outcome.body['data'])} models available")
        else:
            print(f"\nListing models failed ({outcome.kind.value}): {outcome.error}")


if __name__ == "__main__":
    main()

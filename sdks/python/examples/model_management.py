#!/usr/bin/env python3
"""
Model listing example using the mistralex SDK.
"""

from mistralex import Mistral, MistralNotFoundError


def main():
    client = Mistral()

    print("Model Management Example")
    print("=" * 50)

    print("\n1. List models:")
    models = client.models.list()
    for model in models.data:
        print(f"  - {model.id}")

    print("\n2. Model details:")
    model = client.models.retrieve("mistral-small-latest")
    print(f"  Context length: {model.max_context_length}")
    if model.capabilities:
        print(f"  Function calling: {model.capabilities.function_calling}")

    print("\n3. Unknown model:")
    try:
        client.models.retrieve("no-such-model")
    except MistralNotFoundError as e:
        print(f"  {e}")

    client.close()


if __name__ == "__main__":
    main()

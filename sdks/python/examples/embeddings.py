#!/usr/bin/env python3
"""
Embeddings example using the mistralex SDK.
"""

from mistralex import Mistral


def main():
    client = Mistral()

    print("Embeddings Example")
    print("=" * 50)

    print("\n1. Generate embedding for a single text:")
    response = client.embeddings.create(input="Hello, world!")

    embedding = response.data[0].embedding
    print(f"Embedding dimension: {len(embedding)}")
    print(f"First 5 values: {embedding[:5]}")

    print("\n2. Generate embeddings for multiple texts:")
    response = client.embeddings.create(
        input=[
            "Machine learning is fascinating",
            "Python is a great language",
            "Paris is the capital of France",
        ]
    )

    print(f"Generated {len(response.data)} embeddings")
    for i, emb in enumerate(response.data):
        print(f"  Text {i+1}: {len(emb.embedding)} dimensions")

    client.close()


if __name__ == "__main__":
    main()

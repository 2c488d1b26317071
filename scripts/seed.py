"""Seed the blog database with demo users, blogs, likes and comments."""
import argparse
import asyncio
import random
import time

from blogsphere.config import settings
from blogsphere.database import Base, async_session, engine
from blogsphere.federated import GoogleTokenVerifier
from blogsphere.schemas import BlogDraft
from blogsphere.services import engagement_service
from blogsphere.services.blog_service import BlogLifecycle
from blogsphere.services.identity_service import IdentityService

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance"]

DEMO_PASSWORD = "Demo1234"


async def seed(small: bool = False):
    num_users = 5 if small else 25
    num_blogs = 20 if small else 300
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_blogs} blogs, up to {max_comments} comments per blog")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    identity = IdentityService(settings, GoogleTokenVerifier(settings.GOOGLE_CLIENT_ID))
    lifecycle = BlogLifecycle(settings)

    async with async_session() as session:
        user_ids = []
        for i in range(num_users):
            login = await identity.register(session, f"Demo User {i}", f"demo{i:03d}@example.com", DEMO_PASSWORD)
            user_ids.append(identity.verify(login.access_token))
        print(f"  Created {len(user_ids)} users (password {DEMO_PASSWORD!r})")

        blogs = []
        for i in range(num_blogs):
            author = random.choice(user_ids)
            tag = random.choice(TAGS)
            draft = random.random() < 0.1
            created = await lifecycle.create_or_update(session, author, BlogDraft(
                title=f"Blog {i}: Getting more out of {tag}",
                des=f"Notes from running {tag} in production.",
                banner="",
                content=[{"type": "paragraph", "data": {"text": f"Body of blog {i}. " * 10}}],
                tags=random.sample(TAGS, k=random.randint(1, 4)),
                draft=draft,
            ))
            if not draft:
                blogs.append((created["id"], author))
        print(f"  Created {num_blogs} blogs ({len(blogs)} published)")

        total_likes = total_comments = 0
        for blog_id, author in blogs:
            for user_id in random.sample(user_ids, k=random.randint(0, len(user_ids))):
                await engagement_service.set_liked(session, user_id, blog_id, True)
                total_likes += 1
            for _ in range(random.randint(0, max_comments)):
                await engagement_service.add_comment(
                    session, random.choice(user_ids), blog_id, author, "Great read, thanks for sharing!"
                )
                total_comments += 1

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Likes: {total_likes}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (20 blogs)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Seed data script for development

Everything goes through the service layer so counters, notifications and
story expiry stay consistent with what the API would produce.
"""
import asyncio
import sys
from pathlib import Path
import random

# Add the project root to the Python path
current_dir = Path(__file__).parent
root_dir = current_dir.parent
sys.path.insert(0, str(root_dir))

FIRST_NAMES = ["John", "Jane", "Bob", "Alice", "Charlie", "Diana", "Eve", "Frank", "Grace", "Henry"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
CAPTIONS = [
    "Just had the best coffee ever! ☕",
    "Beautiful sunset today! 🌅",
    "Weekend vibes! 🎉",
    "Morning workout complete! 💪",
    "Travel plans for next month! ✈️",
]
LOCATIONS = ["New York", "London", "Tokyo", "Paris", "Sydney", "Berlin"]
COMMENTS = ["Great shot! 👍", "Love this!", "Where is this?", "Amazing!", "So good"]

def media_url() -> str:
    return f"https://picsum.photos/800/800?random={random.randint(1, 1000)}"

async def seed_users(db, count: int) -> list:
    from snapshare.schemas.user_schema import UserCreate
    from snapshare.services.auth_service import AuthService
    from snapshare.services.user_service import UserService

    print(f"👥 Seeding {count} users...")
    auth_service = AuthService(db)
    user_service = UserService(db)

    users = []
    for i in range(count):
        first = random.choice(FIRST_NAMES)
        last = random.choice(LAST_NAMES)
        username = f"{first.lower()}_{last.lower()}_{i}"

        existing = await user_service.get_user_by_username(username)
        if existing:
            users.append(existing)
            continue

        users.append(await auth_service.create_user(UserCreate(
            username=username,
            email=f"{username}@example.com",
            password="Password123!",
            first_name=first,
            last_name=last,
        )))

    print(f"✅ {len(users)} users ready")
    return users

async def seed_follows(db, users: list) -> None:
    from snapshare.exceptions import DuplicateError
    from snapshare.services.follow_service import FollowService

    print("👥 Seeding follow relationships...")
    follow_service = FollowService(db)
    created = 0

    for user in users:
        others = [u for u in users if u.id != user.id]
        for followed in random.sample(others, random.randint(0, len(others) // 2)):
            try:
                await follow_service.follow_user(user.id, followed.id)
                created += 1
            except DuplicateError:
                pass

    print(f"✅ Created {created} follow relationships")

async def seed_posts(db, users: list, count_per_user: int) -> list:
    from snapshare.services.post_service import PostService

    print(f"📸 Seeding posts ({count_per_user} per user)...")
    post_service = PostService(db)

    posts = []
    for user in users:
        for _ in range(count_per_user):
            media = [media_url() for _ in range(random.randint(1, 3))]
            posts.append(await post_service.create_post(
                user.id,
                media,
                "carousel" if len(media) > 1 else "image",
                caption=random.choice(CAPTIONS),
                location=random.choice(LOCATIONS) if random.random() > 0.3 else None,
            ))

    print(f"✅ Created {len(posts)} posts")
    return posts

async def seed_engagement(db, users: list, posts: list) -> None:
    """Likes and comments on a random subset of posts"""
    from snapshare.services.comment_service import CommentService
    from snapshare.services.like_service import LikeService

    print("❤️  Seeding likes and comments...")
    like_service = LikeService(db)
    comment_service = CommentService(db)
    likes = comments = 0

    for post in posts:
        for liker in random.sample(users, random.randint(0, len(users) // 2)):
            await like_service.like_post(liker.id, post.id)
            likes += 1

        for _ in range(random.randint(0, 3)):
            await comment_service.create_comment(post.id, random.choice(users).id, random.choice(COMMENTS))
            comments += 1

    print(f"✅ Created {likes} likes and {comments} comments")

async def seed_stories(db, users: list) -> None:
    from snapshare.services.story_service import StoryService

    print("🕒 Seeding stories...")
    story_service = StoryService(db)

    posters = random.sample(users, max(1, len(users) // 2))
    for user in posters:
        await story_service.create_story(user.id, media_url(), random.choice(["image", "video"]))

    print(f"✅ Created {len(posters)} stories")

async def seed_all(user_count: int = 20, posts_per_user: int = 3) -> None:
    from snapshare.db.session import AsyncSessionLocal, init_db

    print("🌱 Starting database seeding...")
    await init_db()

    async with AsyncSessionLocal() as db:
        users = await seed_users(db, user_count)
        await seed_follows(db, users)
        posts = await seed_posts(db, users, posts_per_user)
        await seed_engagement(db, users, posts)
        await seed_stories(db, users)

    print("🎉 Database seeding completed!")

async def clear_all_data(confirm: bool = False) -> None:
    """Delete every row, children first"""
    if not confirm:
        print("⚠️  WARNING: This will delete ALL data from the database!")
        print("   Use --confirm flag to proceed")
        return

    from snapshare.db.session import engine
    from snapshare.models import Base

    print("🧹 Clearing all data...")

    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
            print(f"  Cleared {table.name}")

    print("✅ All data cleared")

async def reset_and_seed() -> None:
    """Clear then reseed on one event loop"""
    await clear_all_data(True)
    await seed_all()

async def run(job) -> None:
    """Run one seeding job and release the engine before the loop closes"""
    from snapshare.db.session import close_db

    try:
        await job
    finally:
        await close_db()

def main() -> None:
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Database Seeding")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    all_parser = subparsers.add_parser("all", help="Seed all data")
    all_parser.add_argument("--users", type=int, default=20, help="Number of users")
    all_parser.add_argument("--posts", type=int, default=3, help="Posts per user")

    clear_parser = subparsers.add_parser("clear", help="Clear all data")
    clear_parser.add_argument("--confirm", action="store_true", help="Confirm clear")

    reset_parser = subparsers.add_parser("reset", help="Clear and reseed")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm reset")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "all":
            asyncio.run(run(seed_all(args.users, args.posts)))

        elif args.command == "clear":
            asyncio.run(run(clear_all_data(args.confirm)))

        elif args.command == "reset":
            if not args.confirm:
                print("⚠️  WARNING: This will delete ALL data from the database!")
                print("   Use --confirm flag to proceed")
                return

            asyncio.run(run(reset_and_seed()))

    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()

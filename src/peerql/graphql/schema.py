"""
Domain schema: member types, users, profiles, posts and the subscription
link between users.
"""

from __future__ import annotations

from .registry import ResolverMap, TypeRegistry
from .resolvers import member_type, post, profile, user
from .scalars import UUID
from .types import Argument, EnumType, FieldDescriptor, InputObjectType, NamedType, ObjectType

QUERY_TYPE = "RootQueryType"
MUTATION_TYPE = "Mutations"

MemberTypeId = EnumType("MemberTypeId", ("BASIC", "BUSINESS"))

MemberType = ObjectType(
    "MemberType",
    {
        "id": FieldDescriptor("MemberTypeId!"),
        "discount": FieldDescriptor("Float!"),
        "postsLimitPerMonth": FieldDescriptor("Int!", source="posts_limit_per_month"),
        "profiles": FieldDescriptor("[Profile!]!"),
    },
)

Post = ObjectType(
    "Post",
    {
        "id": FieldDescriptor("UUID!"),
        "title": FieldDescriptor("String!"),
        "content": FieldDescriptor("String!"),
        "authorId": FieldDescriptor("UUID!", source="author_id"),
        "author": FieldDescriptor("User"),
    },
)

Profile = ObjectType(
    "Profile",
    {
        "id": FieldDescriptor("UUID!"),
        "isMale": FieldDescriptor("Boolean!", source="is_male"),
        "yearOfBirth": FieldDescriptor("Int!", source="year_of_birth"),
        "userId": FieldDescriptor("UUID!", source="user_id"),
        "memberTypeId": FieldDescriptor("MemberTypeId!", source="member_type_id"),
        "memberType": FieldDescriptor("MemberType!"),
        "user": FieldDescriptor("User"),
    },
)

User = ObjectType(
    "User",
    {
        "id": FieldDescriptor("UUID!"),
        "name": FieldDescriptor("String!"),
        "balance": FieldDescriptor("Float!"),
        "profile": FieldDescriptor("Profile"),
        "posts": FieldDescriptor("[Post!]!"),
        "userSubscribedTo": FieldDescriptor("[User!]!", description="Users this user subscribes to."),
        "subscribedToUser": FieldDescriptor("[User!]!", description="Users subscribed to this user."),
    },
)

# Inputs

CreateUserInput = InputObjectType(
    "CreateUserInput",
    [Argument("name", "String!"), Argument("balance", "Float!")],
)
ChangeUserInput = InputObjectType(
    "ChangeUserInput",
    [Argument("name", "String"), Argument("balance", "Float")],
)
CreatePostInput = InputObjectType(
    "CreatePostInput",
    [Argument("title", "String!"), Argument("content", "String!"), Argument("authorId", "UUID!")],
)
ChangePostInput = InputObjectType(
    "ChangePostInput",
    [Argument("title", "String"), Argument("content", "String")],
)
CreateProfileInput = InputObjectType(
    "CreateProfileInput",
    [
        Argument("isMale", "Boolean!"),
        Argument("yearOfBirth", "Int!"),
        Argument("userId", "UUID!"),
        Argument("memberTypeId", "MemberTypeId!"),
    ],
)
ChangeProfileInput = InputObjectType(
    "ChangeProfileInput",
    [
        Argument("isMale", "Boolean"),
        Argument("yearOfBirth", "Int"),
        Argument("memberTypeId", "MemberTypeId"),
    ],
)

# Roots

_ID = [Argument("id", "UUID!")]

RootQueryType = ObjectType(
    QUERY_TYPE,
    {
        "memberTypes": FieldDescriptor("[MemberType!]!"),
        "memberType": FieldDescriptor("MemberType", args=[Argument("id", "MemberTypeId!")]),
        "users": FieldDescriptor("[User!]!"),
        "user": FieldDescriptor("User", args=_ID),
        "posts": FieldDescriptor("[Post!]!"),
        "post": FieldDescriptor("Post", args=_ID),
        "profiles": FieldDescriptor("[Profile!]!"),
        "profile": FieldDescriptor("Profile", args=_ID),
    },
)


def _change(input_type: str) -> list[Argument]:
    return [Argument("id", "UUID!"), Argument("dto", f"{input_type}!")]


_SUBSCRIPTION_ARGS = [Argument("userId", "UUID!"), Argument("authorId", "UUID!")]

Mutations = ObjectType(
    MUTATION_TYPE,
    {
        "createUser": FieldDescriptor("User!", args=[Argument("dto", "CreateUserInput!")]),
        "changeUser": FieldDescriptor("User!", args=_change("ChangeUserInput")),
        "deleteUser": FieldDescriptor("String!", args=_ID),
        "createPost": FieldDescriptor("Post!", args=[Argument("dto", "CreatePostInput!")]),
        "changePost": FieldDescriptor("Post!", args=_change("ChangePostInput")),
        "deletePost": FieldDescriptor("String!", args=_ID),
        "createProfile": FieldDescriptor("Profile!", args=[Argument("dto", "CreateProfileInput!")]),
        "changeProfile": FieldDescriptor("Profile!", args=_change("ChangeProfileInput")),
        "deleteProfile": FieldDescriptor("String!", args=_ID),
        "subscribeTo": FieldDescriptor("String!", args=_SUBSCRIPTION_ARGS),
        "unsubscribeFrom": FieldDescriptor("String!", args=_SUBSCRIPTION_ARGS),
    },
)

TYPES: tuple[NamedType, ...] = (
    UUID,
    MemberTypeId,
    MemberType,
    Post,
    Profile,
    User,
    CreateUserInput,
    ChangeUserInput,
    CreatePostInput,
    ChangePostInput,
    CreateProfileInput,
    ChangeProfileInput,
    RootQueryType,
    Mutations,
)

RESOLVERS: ResolverMap = {
    (QUERY_TYPE, "memberTypes"): member_type.resolve_member_types,
    (QUERY_TYPE, "memberType"): member_type.resolve_member_type,
    (QUERY_TYPE, "users"): user.resolve_users,
    (QUERY_TYPE, "user"): user.resolve_user,
    (QUERY_TYPE, "posts"): post.resolve_posts,
    (QUERY_TYPE, "post"): post.resolve_post,
    (QUERY_TYPE, "profiles"): profile.resolve_profiles,
    (QUERY_TYPE, "profile"): profile.resolve_profile,
    ("MemberType", "profiles"): member_type.resolve_member_type_profiles,
    ("Post", "author"): post.resolve_post_author,
    ("Profile", "memberType"): profile.resolve_profile_member_type,
    ("Profile", "user"): profile.resolve_profile_user,
    ("User", "profile"): user.resolve_user_profile,
    ("User", "posts"): user.resolve_user_posts,
    ("User", "userSubscribedTo"): user.resolve_user_subscribed_to,
    ("User", "subscribedToUser"): user.resolve_subscribed_to_user,
    (MUTATION_TYPE, "createUser"): user.resolve_create_user,
    (MUTATION_TYPE, "changeUser"): user.resolve_change_user,
    (MUTATION_TYPE, "deleteUser"): user.resolve_delete_user,
    (MUTATION_TYPE, "subscribeTo"): user.resolve_subscribe_to,
    (MUTATION_TYPE, "unsubscribeFrom"): user.resolve_unsubscribe_from,
    (MUTATION_TYPE, "createPost"): post.resolve_create_post,
    (MUTATION_TYPE, "changePost"): post.resolve_change_post,
    (MUTATION_TYPE, "deletePost"): post.resolve_delete_post,
    (MUTATION_TYPE, "createProfile"): profile.resolve_create_profile,
    (MUTATION_TYPE, "changeProfile"): profile.resolve_change_profile,
    (MUTATION_TYPE, "deleteProfile"): profile.resolve_delete_profile,
}


def create_registry() -> TypeRegistry:
    """Build the process-wide registry for the domain schema.

    Raises:
        SchemaError: If the declarations are inconsistent
    """
    return TypeRegistry.register(TYPES, query=QUERY_TYPE, mutation=MUTATION_TYPE, resolvers=RESOLVERS)

"""
表情身份组链监听器
Reaction role chain listener.

一条链由若干已链接的配置组成，用户必须在链上每个位置都选择了身份组，
才会一次性获得全部所选身份组。
A chain is a sequence of linked configurations; a user only receives the
chosen roles, all at once, after picking one at every position of the chain.
"""

from __future__ import annotations

import logging

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.events import GatewayEvent, MemberInfo, ReactionEvent
from GuildPackBot.kernel.alarms import AlarmClock
from GuildPackBot.reactrole.models import ReactRoleConfig

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = 1.0


class ReactRoleChainListener:
    """
    表情身份组链监听器
    Reaction role chain listener.

    每个用户的去抖计时器相互独立，同一用户的新事件总会取消并替换旧计时器。
    Users' debounce timers are independent; a new event for a user always
    cancels and replaces that user's pending timer.
    """

    def __init__(
        self,
        client: ChatClient,
        guild_id: str,
        config: ReactRoleConfig,
        cooldown: float = DEFAULT_COOLDOWN,
    ) -> None:
        self.client = client
        self.guild_id = guild_id
        self.channel_id = config.observables.channel_id
        self.cooldown = cooldown
        self.configs: list[ReactRoleConfig] = [config]

        # 缓存
        self.assignable_roles: list[str] = []
        self.msg_map: dict[str, int] = {}
        # 用户 -> {链位置: 身份组}
        self.user_role_proposals: dict[str, dict[int, str]] = {}
        # 机器人自己移除的表情 (用户, 消息, 表情)，对应的移除事件不做处理
        self.protected_reactions: set[tuple[str, str, str]] = set()
        self._alarms = AlarmClock()

        self._regenerate_index()
        client.add_listener(GatewayEvent.REACTION_ADD, self.on_reaction_add)
        client.add_listener(GatewayEvent.REACTION_REMOVE, self.on_reaction_remove)

    @property
    def config_names(self) -> list[str]:
        return [config.name for config in self.configs]

    @property
    def alarms(self) -> AlarmClock:
        return self._alarms

    def add_config(self, config: ReactRoleConfig) -> None:
        """把链上的下一个配置加入监听器 / Append the next configuration of the chain."""
        self.configs.append(config)
        self._regenerate_index()

    def unload(self) -> None:
        """
        解除事件监听并取消所有计时器，已发布的消息保持不变
        Detach the event listeners and cancel all timers; posted messages stay.
        """
        self.client.remove_listener(GatewayEvent.REACTION_ADD, self.on_reaction_add)
        self.client.remove_listener(
            GatewayEvent.REACTION_REMOVE, self.on_reaction_remove
        )
        self._alarms.cancel_all()

    def _regenerate_index(self) -> None:
        self.assignable_roles.clear()
        self.msg_map.clear()
        for index, config in enumerate(self.configs):
            for message_id in config.observables.message_ids:
                self.msg_map[message_id] = index
            for pair in config.reactions:
                if pair.role not in self.assignable_roles:
                    self.assignable_roles.append(pair.role)

    def _locate(self, event: ReactionEvent) -> int:
        """
        返回事件所在的链位置，与本链无关时返回 -1
        Return the chain position of an event, or -1 when it does not concern this chain.
        """
        if event.user_id == self.client.user_id:
            return -1
        if event.guild_id != self.guild_id or event.channel_id != self.channel_id:
            return -1
        return self.msg_map.get(event.message_id, -1)

    async def _fetch_member(self, user_id: str) -> MemberInfo | None:
        try:
            return await self.client.fetch_member(self.guild_id, user_id)
        except Exception:
            logger.exception("获取成员 %s 失败，跳过身份组调整", user_id)
            return None

    def _set_cooldown(self, user_id: str, callback) -> None:
        self._alarms.schedule(user_id, self.cooldown, callback)

    async def on_reaction_add(self, event: ReactionEvent) -> None:
        """处理表情添加事件 / Handle a reaction being added."""
        index = self._locate(event)
        if index < 0:
            return

        role = self.configs[index].role_for(event.emoji)
        if role is None:
            return

        user_id = event.user_id
        self.user_role_proposals.setdefault(user_id, {})[index] = role
        self._set_cooldown(user_id, lambda: self.verify_role_assignment(user_id))

        await self._keep_one_reaction(event)

    async def _keep_one_reaction(self, event: ReactionEvent) -> None:
        """
        每个用户在每条消息上只保留一个表情
        Keep at most one reaction per user on each message.
        """
        try:
            reactions = await self.client.fetch_reaction_users(
                event.channel_id, event.message_id
            )
        except Exception:
            logger.exception("获取消息 %s 的表情失败", event.message_id)
            return

        for emoji, users in reactions.items():
            if emoji == event.emoji or event.user_id not in users:
                continue

            key = (event.user_id, event.message_id, emoji)
            self.protected_reactions.add(key)
            try:
                await self.client.remove_user_reaction(
                    event.channel_id, event.message_id, emoji, event.user_id
                )
            except Exception:
                self.protected_reactions.discard(key)
                logger.exception("移除用户 %s 的表情 %s 失败", event.user_id, emoji)

    async def on_reaction_remove(self, event: ReactionEvent) -> None:
        """处理表情移除事件 / Handle a reaction being removed."""
        index = self._locate(event)
        if index < 0:
            return

        # 由 _keep_one_reaction 引起的移除
        key = (event.user_id, event.message_id, event.emoji)
        if key in self.protected_reactions:
            self.protected_reactions.discard(key)
            return
        if self.configs[index].role_for(event.emoji) is None:
            return

        user_id = event.user_id
        self.user_role_proposals.setdefault(user_id, {}).pop(index, None)
        self._set_cooldown(user_id, lambda: self.verify_role_removal(user_id))

    def has_complete_proposal(self, user_id: str) -> bool:
        """用户是否在每个链位置都做出了选择 / Whether the user chose at every position."""
        choices = self.user_role_proposals.get(user_id, {})
        return all(choices.get(index) for index in range(len(self.configs)))

    async def verify_role_assignment(self, user_id: str) -> None:
        """
        链上每个位置都有选择时，一次性设置成员的身份组
        Once every chain position has a choice, set the member's roles in one call.

        与本链无关的身份组保持不变。
        Roles this chain does not manage are preserved.
        """
        if not self.has_complete_proposal(user_id):
            return

        member = await self._fetch_member(user_id)
        if member is None:
            return

        choices = self.user_role_proposals[user_id]
        interfering = [r for r in member.role_ids if r not in self.assignable_roles]
        chosen = [choices[index] for index in range(len(self.configs))]
        roles = list(dict.fromkeys(interfering + chosen))

        await self.client.set_member_roles(self.guild_id, user_id, roles)
        logger.info("已为用户 %s 设置身份组: %s", user_id, ", ".join(chosen))

    async def verify_role_removal(self, user_id: str) -> None:
        """
        移除成员持有的、本链管理的所有身份组
        Strip every role managed by this chain that the member holds.
        """
        member = await self._fetch_member(user_id)
        if member is None:
            logger.warning("用户 %s 不存在", user_id)
            return

        held = [role for role in self.assignable_roles if role in member.role_ids]
        if not held:
            return

        await self.client.remove_member_roles(self.guild_id, user_id, held)
        logger.info("已移除用户 %s 的身份组: %s", user_id, ", ".join(held))

"""Remote Capability Set - operations that only make sense inside the page

Each RemoteMethod is a named JS function with a fixed parameter list. Bodies
reference only their parameters and the Hubs page globals (APP, NAF, THREE,
document), never host state, so the same text runs in two places:
- live: HubsBot.evaluate() sends RemoteMethod.as_function() to page.evaluate
- offline: InBrowserBotBuilder renders the catalog as `class InBrowserBot`

RESPONSIBILITY:
- Define the in-page catalog once (IN_BROWSER_BOT)
- Render entries as standalone functions or class methods

DOES NOT:
- Talk to the browser (HubsBot does)
- Decide which entries get host proxies (HubsBot does)

GUARDRAIL: bodies must not use `this`. A live call has no bot instance, so
any state a method keeps lives on `window`.
"""

import re
import textwrap
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Optional, Tuple


def to_snake(name: str) -> str:
    """goTo -> go_to, getAllObjects -> get_all_objects"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def to_camel(name: str) -> str:
    """auto_drop_timeout -> autoDropTimeout; already-camel names pass through"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@dataclass(frozen=True)
class RemoteMethod:
    """A JS function meant to run inside the page."""
    name: str
    params: Tuple[str, ...]
    body: str
    is_async: bool = True
    doc: str = ""

    @property
    def attr(self) -> str:
        """Python attribute name of the host proxy."""
        return to_snake(self.name)

    def _signature(self) -> str:
        return f"{self.name}({', '.join(self.params)})"

    def _block(self, indent: str) -> str:
        body = textwrap.dedent(self.body).strip("\n")
        return "{\n" + textwrap.indent(body, indent) + "\n}"

    def as_function(self) -> str:
        """Standalone function expression, e.g. for page.evaluate."""
        prefix = "async function" if self.is_async else "function"
        return f"{prefix} {self._signature()} {self._block('  ')}"

    def as_method(self) -> str:
        """Class-body method definition."""
        prefix = "async " if self.is_async else ""
        lines = []
        if self.doc:
            lines.append(f"/** {self.doc} */")
        lines.append(f"{prefix}{self._signature()} {self._block('  ')}")
        return "\n".join(lines)


class CapabilityCatalog:
    """Immutable, ordered set of RemoteMethods keyed by in-page name."""

    def __init__(self, methods: Iterable[RemoteMethod]):
        entries: Dict[str, RemoteMethod] = {}
        for method in methods:
            if not isinstance(method, RemoteMethod):
                raise TypeError(f"Catalog entries must be RemoteMethod, got {type(method).__name__}")
            if method.name in entries:
                raise ValueError(f"RemoteMethod '{method.name}' is already defined")
            entries[method.name] = method
        self._entries = MappingProxyType(entries)

    def __iter__(self) -> Iterator[RemoteMethod]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def get(self, name: str) -> Optional[RemoteMethod]:
        return self._entries.get(name)

    def by_attr(self, attr: str) -> Optional[RemoteMethod]:
        for method in self._entries.values():
            if method.attr == attr:
                return method
        return None

    def names(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def overlay(self, methods: Iterable[RemoteMethod]) -> "CapabilityCatalog":
        """New catalog where `methods` replace same-named entries."""
        merged = dict(self._entries)
        for method in CapabilityCatalog(methods):
            merged[method.name] = method
        return CapabilityCatalog(merged.values())

    def render_class(self, class_name: str, extends: Optional[str] = None) -> str:
        """Render as a JS class declaration."""
        header = f"class {class_name} extends {extends} {{" if extends else f"class {class_name} {{"
        members = "\n\n".join(textwrap.indent(m.as_method(), "  ") for m in self)
        return f"{header}\n{members}\n}}"


IN_BROWSER_BOT = CapabilityCatalog([
    RemoteMethod(
        name="enterRoom",
        params=("room",),
        is_async=False,
        doc="Placeholder to not break scripts. InBrowserBots cannot enter or switch rooms",
        body="""
            console.warn("Cannot enter a different room from an InBrowserBot");
        """,
    ),
    RemoteMethod(
        name="evaluate",
        params=("fn", "...args"),
        doc="Runs fn in the page; this is the page already",
        body="""
            return await fn(...args);
        """,
    ),
    RemoteMethod(
        name="setAttribute",
        params=("attr", "val"),
        doc="Sets an attribute on the avatar rig",
        body="""
            document.querySelector('#avatar-rig').setAttribute(attr, val);
        """,
    ),
    RemoteMethod(
        name="checkSanity",
        params=("period = 60000",),
        doc="Samples peer vs. avatar counts every period ms; flags a dog-pile",
        body="""
            if (window.__hubsBotSanityTimer) window.clearInterval(window.__hubsBotSanityTimer);
            window.__hubsBotSanityTimer = window.setInterval(() => {
              let counts;
              try {
                counts = {
                  connectionCount: Object.keys(NAF.connection.adapter.occupants).length,
                  avatarCount: document.querySelectorAll("[networked-avatar]").length - 1
                };
              } catch (e) {
                // Usually the page is shutting down.
                return;
              }
              console.log(JSON.stringify(counts));
              counts.dogPile = counts.connectionCount > 2 && counts.avatarCount === 0;
              if (counts.dogPile) console.log("Detected avatar dog-pile.");
              window.__hubsBotSanity = counts;
            }, period);
            return true;
        """,
    ),
    RemoteMethod(
        name="sampleSanity",
        params=(),
        doc="One {connectionCount, avatarCount} reading, or null while tearing down",
        body="""
            try {
              return {
                connectionCount: Object.keys(NAF.connection.adapter.occupants).length,
                avatarCount: document.querySelectorAll("[networked-avatar]").length - 1
              };
            } catch (e) {
              return null;
            }
        """,
    ),
    RemoteMethod(
        name="spawnObject",
        params=("opts = {}",),
        doc="Creates a networked interactive object, like the magic wand",
        body="""
            let {
              url,
              scale = '1 1 1',
              position = '0 0 0',
              rotation = '0 0 0',
              dynamic = false,
              gravity = { x: 0, y: -9.8, z: 0 },
              mass = 1,
              linearDamping = 0.01,
              angularDamping = 0.01,
              collisionFilterMask = 1 | 2 | 4 | 8,
              autoDropTimeout,
              pollInterval = 100,
              stillnessThreshold = 0.01,
              fitToBox = true,
              pinned = false,
              pinDelay = 2000,
              projection = null
            } = opts;
            if (!url) throw new Error("spawnObject requires a url");

            const el = document.createElement("a-entity");
            const loaded = new Promise(r => el.addEventListener('loaded', r, {once: true}));

            el.setAttribute('scale', scale);
            el.setAttribute('position', position);
            el.setAttribute('rotation', rotation);
            el.setAttribute('media-loader', {src: url, resolve: true, fitToBox});
            el.setAttribute('networked', {template: '#interactable-media'});
            if (projection) {
              el.setAttribute('media-loader', {mediaOptions: {projection}});
              // Projected media (360 images) never take physics.
              dynamic = false;
            }
            document.querySelector('a-scene').append(el);

            await loaded;
            const netEl = await NAF.utils.getNetworkedEntity(el);

            if (dynamic) {
              await new Promise(r => window.setTimeout(r, 200));

              const drop = async () => {
                console.log("Dropping!");
                if (!NAF.utils.isMine(netEl)) await NAF.utils.takeOwnership(netEl);

                netEl.setAttribute('floaty-object', {
                  autoLockOnLoad: false,
                  gravitySpeedLimit: 0,
                  modifyGravityOnRelease: false
                });
                netEl.setAttribute('body-helper', {
                  type: 'dynamic',
                  mass,
                  gravity,
                  angularDamping,
                  linearDamping,
                  linearSleepingThreshold: 1.6,
                  angularSleepingThreshold: 2.5,
                  collisionFilterMask
                });

                const physicsSystem = document.querySelector('a-scene').systems["hubs-systems"].physicsSystem;
                const uuid = netEl.components["body-helper"].uuid;
                if (uuid) physicsSystem.activateBody(uuid);
              };

              await drop();

              if (autoDropTimeout) {
                let dropTimer;
                const lastPosition = new THREE.Vector3();
                lastPosition.copy(el.object3D.position);

                const poller = window.setInterval(async () => {
                  if (!el.parentNode) {
                    window.clearInterval(poller);
                    return;
                  }
                  let owned;
                  try {
                    owned = NAF.utils.isMine(await NAF.utils.getNetworkedEntity(el));
                  } catch (e) {
                    window.clearInterval(poller);
                    return;
                  }
                  if (owned) return;

                  if (lastPosition.distanceTo(el.object3D.position) > stillnessThreshold) {
                    if (typeof dropTimer !== 'undefined') {
                      window.clearTimeout(dropTimer);
                      dropTimer = undefined;
                    }
                  } else if (typeof dropTimer === 'undefined') {
                    dropTimer = window.setTimeout(() => { dropTimer = undefined; drop(); }, autoDropTimeout);
                  }
                  lastPosition.copy(el.object3D.position);
                }, pollInterval);
              }
            }

            if (pinned) {
              await new Promise(r => window.setTimeout(r, pinDelay));
              netEl.setAttribute('pinnable', {pinned});
            }

            return netEl.id;
        """,
    ),
    RemoteMethod(
        name="goTo",
        params=("positionOrX", "optsOrY", "z", "opts"),
        doc="Moves the bot instantly; accepts (x, y, z) or ({x, y, z})",
        body="""
            let x, y;
            if (typeof z === 'undefined' || z === null) {
              x = positionOrX.x;
              y = positionOrX.y;
              z = positionOrX.z;
              opts = optsOrY;
            } else {
              x = positionOrX;
              y = optsOrY;
            }
            document.querySelector('#avatar-rig').setAttribute('position', {x, y, z});
        """,
    ),
    RemoteMethod(
        name="getPosition",
        params=(),
        body="""
            const p = document.querySelector('#avatar-rig').getAttribute('position');
            return {x: p.x, y: p.y, z: p.z};
        """,
    ),
    RemoteMethod(
        name="setName",
        params=("name",),
        doc='Sets the display name, always prefixed with "bot - "',
        body="""
            if (typeof name !== 'string' || !/^[A-Za-z0-9 -]{1,26}$/.test(name)) {
              throw new Error("Name pattern not valid.");
            }
            // Prefix so other users know it's a bot
            if (!name.startsWith("bot - ")) name = "bot - " + name;
            await window.APP.store.update({
              activity: {
                hasChangedName: true,
                hasAcceptedProfile: true
              },
              profile: {
                displayName: name
              }
            });
            return name;
        """,
    ),
    RemoteMethod(
        name="getName",
        params=(),
        body="""
            return window.APP.store.state.profile.displayName;
        """,
    ),
    RemoteMethod(
        name="getAudioContext",
        params=(),
        body="""
            return {
              state: THREE.AudioContext.getContext().state,
              audioname: THREE.Audio.name
            };
        """,
    ),
    RemoteMethod(
        name="getWaypoints",
        params=(),
        doc="Named waypoints with position, rotation and component data",
        body="""
            return Array.from(document.querySelectorAll('[waypoint]')).map(wp => {
              const {position, rotation} = wp.object3D;
              return {
                name: wp.object3D.name,
                position: {x: position.x, y: position.y, z: position.z},
                rotation: {x: rotation.x, y: rotation.y, z: rotation.z},
                data: wp.components.waypoint.data
              };
            });
        """,
    ),
    RemoteMethod(
        name="say",
        params=("message",),
        doc="Posts a message to the chat",
        body="""
            window.APP.hubChannel.sendMessage(message);
        """,
    ),
    RemoteMethod(
        name="changeScene",
        params=("url",),
        doc="Changes the room's scene if permitted",
        body="""
            window.APP.hubChannel.updateScene(url);
        """,
    ),
    RemoteMethod(
        name="controlHands",
        params=(),
        doc="Makes the bot's hands visible and controllable",
        body="""
            if (window.__hubsBotHandsControlled) return;
            const controlsBlocklist = [
              "tracked-controls",
              "hand-controls2",
              "vive-controls",
              "oculus-touch-controls",
              "windows-motion-controls",
              "daydream-controls",
              "gearvr-controls"
            ];
            document.querySelectorAll('.left-controller,.right-controller').forEach(controller => {
              controlsBlocklist.forEach(c => controller.removeAttribute(c));
              controller.removeAttribute('visibility-by-path');
              controller.setAttribute("visible", true);
            });
            window.__hubsBotHandsControlled = true;
        """,
    ),
    RemoteMethod(
        name="setAvatarLocations",
        params=("{leftHand, rightHand, head} = {}",),
        doc="Sets position and rotation of hands and head",
        body="""
            const place = (selector, t) => {
              const el = document.querySelector(selector);
              if (t.position) el.setAttribute('position', t.position);
              if (t.rotation) el.setAttribute('rotation', t.rotation);
            };
            if (leftHand) place('.left-controller', leftHand);
            if (rightHand) place('.right-controller', rightHand);
            if (head) place('#avatar-pov-node', head);
        """,
    ),
    RemoteMethod(
        name="getAllObjects",
        params=("claim = true",),
        doc="Lists networked media entities, claiming ownership unless claim is false",
        body="""
            const medias = document.querySelectorAll("[media-loader][id^=naf]");
            const objects = [];
            for (const media of medias) {
              if (claim) {
                const netEl = await NAF.utils.getNetworkedEntity(media);
                if (!NAF.utils.isMine(netEl)) await NAF.utils.takeOwnership(netEl);
              }
              objects.push({
                id: media.id,
                src: media.components['media-loader'].attrValue.src,
                position: media.getAttribute('position'),
                rotation: media.getAttribute('rotation'),
                scale: media.getAttribute('scale')
              });
            }
            return objects;
        """,
    ),
    RemoteMethod(
        name="listNetworkedMedia",
        params=(),
        body="""
            return Array.from(document.querySelectorAll("[media-loader][id^=naf]")).map(el => el.id);
        """,
    ),
    RemoteMethod(
        name="deleteObject",
        params=("id",),
        doc="Unpins, claims and removes one networked entity",
        body="""
            const el = document.getElementById(id);
            if (!el) throw new Error(`No entity with id ${id}`);
            const netEl = await NAF.utils.getNetworkedEntity(el);
            if (!NAF.utils.isMine(netEl)) await NAF.utils.takeOwnership(netEl);
            netEl.setAttribute("pinnable", "pinned", false);
            netEl.remove();
            return id;
        """,
    ),
    RemoteMethod(
        name="deleteAllObjects",
        params=("delay = 1000",),
        doc="Best-effort bulk delete, one entity at a time; stops at the first failure",
        body="""
            let deleted = 0;
            try {
              const medias = Array.from(document.querySelectorAll("[media-loader][id^=naf]"));
              console.log("deleting", medias.length);
              for (const media of medias) {
                const netEl = await NAF.utils.getNetworkedEntity(media);
                if (!NAF.utils.isMine(netEl)) await NAF.utils.takeOwnership(netEl);
                netEl.setAttribute("pinnable", "pinned", false);
                netEl.remove();
                deleted++;
                await new Promise(r => window.setTimeout(r, delay));
              }
            } catch (e) {
              console.error("Error deleting object : ", e);
            }
            return deleted;
        """,
    ),
])
